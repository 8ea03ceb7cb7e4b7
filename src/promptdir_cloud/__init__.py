"""Prompt Directory Cloud: the server-side functions behind the prompt directory.

Hosts the rate-limited AI prompt generator and the newsletter signup endpoint.
"""

__version__ = "0.3.0"
