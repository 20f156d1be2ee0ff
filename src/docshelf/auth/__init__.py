"""Authentication.

Learn: Two authentication paths, both resolving to an Identity:
1. Login → HTTP Basic (email/password) → opaque bearer token
2. Every other protected route → `Authorization: Bearer <token>`

Tokens are random strings stored one-per-user in the tokens table;
there is no JWT and no expiry.
"""
