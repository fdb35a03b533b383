"""Deterministic secret derivation from the platform passphrase."""

import hashlib
from typing import Dict, Tuple

SALT_NAMESPACE = "olympusoss"
ITERATIONS = 600_000
DIGEST = "sha256"

# (name, byte length). Cipher secrets must serialize to exactly 32 hex characters.
CORE_SECRETS: Tuple[Tuple[str, int], ...] = (
    ("CIAM_KRATOS_SECRET_COOKIE", 32),
    ("CIAM_KRATOS_SECRET_CIPHER", 16),
    ("IAM_KRATOS_SECRET_COOKIE", 32),
    ("IAM_KRATOS_SECRET_CIPHER", 16),
    ("CIAM_HYDRA_SECRET_SYSTEM", 32),
    ("CIAM_HYDRA_PAIRWISE_SALT", 32),
    ("IAM_HYDRA_SECRET_SYSTEM", 32),
    ("IAM_HYDRA_PAIRWISE_SALT", 32),
    ("ATHENA_CIAM_OAUTH_CLIENT_SECRET", 32),
    ("ATHENA_IAM_OAUTH_CLIENT_SECRET", 32),
    ("PGADMIN_OAUTH_CLIENT_SECRET", 32),
)

SITE_SECRETS: Tuple[Tuple[str, int], ...] = (
    ("SITE_CIAM_CLIENT_SECRET", 32),
    ("SITE_IAM_CLIENT_SECRET", 32),
)


def derive_secret(passphrase: str, name: str, length: int, iterations: int = ITERATIONS) -> str:
    """Derive a hex secret of ``length`` bytes from ``passphrase``.

    The salt is ``"olympusoss:<name>"`` so every secret name yields an
    independent value, and the same inputs always produce the same output.
    """
    salt = f"{SALT_NAMESPACE}:{name}".encode("utf-8")
    key = hashlib.pbkdf2_hmac(DIGEST, passphrase.encode("utf-8"), salt, iterations, dklen=length)
    return key.hex()


def secret_catalog(include_site: bool) -> Tuple[Tuple[str, int], ...]:
    if include_site:
        return CORE_SECRETS + SITE_SECRETS
    return CORE_SECRETS


def derive_all_secrets(
    passphrase: str,
    include_site: bool,
    iterations: int = ITERATIONS,
) -> Dict[str, str]:
    return {
        name: derive_secret(passphrase, name, length, iterations=iterations)
        for name, length in secret_catalog(include_site)
    }
