"""Slack invite request service.

Visitors sign in with Google, fill out a short application form and the
request is relayed to a Slack channel. See ``invite_request.main`` for the
entry point.
"""

__all__: list[str] = []
