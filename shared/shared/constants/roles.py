from enum import Enum


class Role(str, Enum):
    LEARNER = "learner"
    CREATOR = "creator"
    ADMIN = "admin"
