from typing import Dict, Hashable


class RequestFence:
    """
    Tag each fetch with an increasing id per key; only the newest id is current.
    A slow answer to an older request can then be recognised and thrown away.
    """

    def __init__(self):
        self._latest: Dict[Hashable, int] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._latest)

    def issue(self, key: Hashable) -> int:
        self._counter += 1
        self._latest[key] = self._counter
        return self._counter

    def is_current(self, key: Hashable, token: int) -> bool:
        return self._latest.get(key) == token

    def forget(self, key: Hashable, token: int) -> None:
        """Drop the key once its newest request is done; older tokens leave it alone."""
        if self.is_current(key, token):
            del self._latest[key]
