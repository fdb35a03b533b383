"""Prompt input validators.

Each validator receives the raw prompt text and returns the cleaned value or
raises ``click.BadParameter``; ``click.prompt`` shows the message and asks
again, so malformed input is never coerced.
"""

import re
from pathlib import Path
from typing import Callable

import click

from octl.constants import MIN_SECRET_LENGTH
from octl.models import RepoCoordinates

DOMAIN_PATTERN = re.compile(r"^[a-z0-9.-]+\.[a-z]{2,}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IPV4_PATTERN = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")
RESEND_KEY_PREFIX = "re_"


def validate_domain(value: str) -> str:
    cleaned = value.strip().lower()
    if not DOMAIN_PATTERN.match(cleaned):
        raise click.BadParameter("Enter a valid domain name (e.g. example.com).")
    return cleaned


def validate_email(value: str) -> str:
    cleaned = value.strip()
    if not EMAIL_PATTERN.match(cleaned):
        raise click.BadParameter("Enter a valid email address.")
    return cleaned


def validate_ipv4(value: str) -> str:
    cleaned = value.strip()
    if not IPV4_PATTERN.match(cleaned) or any(int(part) > 255 for part in cleaned.split(".")):
        raise click.BadParameter("Enter a valid IPv4 address.")
    return cleaned


def min_length(length: int = MIN_SECRET_LENGTH, label: str = "Value") -> Callable[[str], str]:
    def validate(value: str) -> str:
        if len(value) < length:
            raise click.BadParameter(f"{label} must be at least {length} characters.")
        return value

    return validate


def validate_repo_slug(value: str) -> RepoCoordinates:
    coordinates = RepoCoordinates.parse(value)
    if coordinates is None:
        raise click.BadParameter("Format: owner/name")
    return coordinates


def validate_resend_key(value: str) -> str:
    cleaned = value.strip()
    if not cleaned.startswith(RESEND_KEY_PREFIX):
        raise click.BadParameter(f"API key must start with {RESEND_KEY_PREFIX}")
    return cleaned


def validate_non_empty(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise click.BadParameter("Value cannot be empty.")
    return cleaned


def validate_file_path(value: str) -> str:
    path = Path(value.strip()).expanduser()
    if not path.is_file():
        raise click.BadParameter(f"File not found: {path}")
    return str(path)
