"""TalentFlow — recruitment platform core.

Bearer-token sessions (issue, verify, rotate, revoke) shared by every
service, role gates layered on top of them, and the job-application
lifecycle that only admins may advance.
"""

__version__ = "0.1.0"
