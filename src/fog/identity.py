"""Machine identity generation."""

import secrets

from fog import constants


def generate_machine_id() -> str:
    """Generate a random machine ID.

    32 bytes from the OS CSPRNG, hex-encoded (64 lowercase characters).
    Uniqueness is probabilistic and not checked against live machines.
    If the entropy source fails the error propagates: there is no safe way
    to continue without randomness.
    """
    return secrets.token_hex(constants.MACHINE_ID_BYTES)
