from typing import Dict, MutableMapping, Protocol


class StumpAuthProvider(Protocol):
    """Injects authentication into outgoing request headers.

    Stump supports several authentication schemes; only API keys are
    implemented here.
    """

    def add_auth(self, headers: MutableMapping[str, str]) -> None:
        ...


class StumpApiKeyAuthProvider:
    def __init__(self, api_key: str):
        self.api_key = api_key

    def add_auth(self, headers: MutableMapping[str, str]) -> None:
        headers["Authorization"] = f"Bearer {self.api_key}"


def auth_headers(provider: StumpAuthProvider) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    provider.add_auth(headers)
    return headers
