"""SafeReport - Confidential incident reporting service.

Anonymizes incident narratives before they are stored and issues case
tokens for unauthenticated status lookup.
"""

__version__ = "0.1.0"
