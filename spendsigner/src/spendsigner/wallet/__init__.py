"""
Wallet key store, script templates and input signing.
"""
