# sprintboard/exceptions/auth.py
from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base authentication error"""
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class MissingSessionError(AuthenticationError):
    """No bearer token on a request that needs one"""
    def __init__(self):
        super().__init__(detail="Unauthorized")


class InvalidSessionError(AuthenticationError):
    """Token could not be decoded, expired, or names an unknown user"""
    def __init__(self):
        super().__init__(detail="Could not validate session")
