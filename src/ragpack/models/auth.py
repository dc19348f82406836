"""Credentials handed to content sources."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BasicAuth:
    """Username/password pair for HTTP basic authentication."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class ConfluenceCredentials(BasicAuth):
    """Basic auth plus the Confluence site the page lives on.

    For Atlassian Cloud the password is an API token.
    """

    base_url: str = ""

    def __repr__(self) -> str:
        return (
            f"ConfluenceCredentials(base_url={self.base_url!r}, "
            f"username={self.username!r}, password='***')"
        )
