"""
Errors raised while computing input scripts.

Every failure of the resolver surfaces as one of these. None of them are
retried internally.
"""

from __future__ import annotations


class InputScriptError(Exception):
    pass


class UnknownOutputError(InputScriptError):
    """The output script matches no address in the key store."""

    pass


class KeyUnavailableError(InputScriptError):
    """The address is known but its private key cannot be produced (watch-only)."""

    pass


class UnsupportedAddressTypeError(InputScriptError):
    """The address type is known to the wallet but cannot be spent here."""

    pass


class TweakFailedError(InputScriptError):
    pass


class SigningFailedError(InputScriptError):
    pass
