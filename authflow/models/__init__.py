"""Domain models for authflow.

    from authflow.models import Account, Token, TokenPurpose

- account.py: Account, PublicAccount, normalize_email
- token.py: Token, IssuedToken, TokenPurpose
"""

from authflow.models.account import Account, PublicAccount, normalize_email
from authflow.models.token import IssuedToken, Token, TokenPurpose

__all__ = [
    "Account",
    "IssuedToken",
    "PublicAccount",
    "Token",
    "TokenPurpose",
    "normalize_email",
]
