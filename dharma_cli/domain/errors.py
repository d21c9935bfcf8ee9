"""
Domain Errors
Typed failures shared by the borrower workflow, the credential flow and
the chain/lending collaborators.
"""

from typing import Optional


class DharmaError(Exception):
    """Base class for every failure the CLI knows how to report"""


# ======================
# Credentials
# ======================

class InvalidSecret(DharmaError):
    """Passphrase does not decrypt the stored wallet"""


class InvalidRecoveryPhrase(DharmaError):
    """Recovery phrase is not a valid mnemonic"""


class SecretMismatch(DharmaError):
    """Passphrase and its confirmation differ"""


class AttemptsExhausted(DharmaError):
    """A bounded prompt loop ran out of attempts"""

    def __init__(self, what: str, attempts: int):
        super().__init__(f"Gave up on {what} after {attempts} attempts")
        self.what = what
        self.attempts = attempts


# ======================
# Lending service
# ======================

class LendingServiceError(DharmaError):
    """Lending service rejected or failed a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(LendingServiceError):
    """Borrower must (re-)authenticate before the service will attest"""

    type = "AuthenticationError"


# ======================
# Chain
# ======================

class ChainQueryError(DharmaError):
    """Blockchain node query failed"""


class ConfirmationTimeout(DharmaError):
    """Transaction was not mined before the confirmation deadline"""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not mined after {timeout:g}s")
        self.tx_hash = tx_hash
        self.timeout = timeout
