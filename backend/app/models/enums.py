from enum import Enum


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    WAIT_RESULT = "WAIT_RESULT"  # interview scheduled
    PASS_INTERVIEW = "PASS_INTERVIEW"
    REJECT_INTERVIEW = "REJECT_INTERVIEW"
    REJECT = "REJECT"  # rejected without interview


class FileType(str, Enum):
    PHOTO = "PHOTO"
    CV = "CV"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    RECRUITER = "RECRUITER"
    INTERVIEWER = "INTERVIEWER"


STATUS_VALUES = [s.value for s in ApplicationStatus]
