"""User roles: a closed set, carried in the access token's role claim."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    CANDIDATE = "candidate"
