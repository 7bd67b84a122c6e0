"""Errors shared between repositories and domain services."""

from __future__ import annotations


class CredentialError(Exception):
    """Base exception for login and registration failures."""


class EmailAlreadyExistsError(CredentialError):
    """Raised when attempting to register with an existing email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"User with email {email} already exists")
        self.email = email


class InvalidCredentialsError(CredentialError):
    """Raised when login credentials are invalid."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")
