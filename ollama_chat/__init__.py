"""Ollama Chat - Backend.

A small chat service in front of a locally hosted Ollama model server:
- Users register/log in and receive short-lived JWTs.
- Each user owns one chat session (ordered user/ai messages).
- Admins can list users; super admins can change roles and delete users.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
