"""docshelf — personal document shelf backend.

Users register, log in with Basic credentials to get a bearer token, and
manage their own uploaded documents (sheet-music style metadata plus the
stored file). Every document query is scoped to the token's owner.
"""

__version__ = "0.1.0"
