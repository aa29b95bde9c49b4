from typing import Dict, Iterable, Optional


class ScoreLedger:
    """Points per display name.

    Entries are keyed by name, so two participants sharing a name share a
    score. Entries are never removed and only ever grow.
    """

    def __init__(self, points: Optional[Dict[str, int]] = None):
        self._points: Dict[str, int] = {
            name: max(0, int(value)) for name, value in (points or {}).items()
        }

    def register(self, name: str) -> bool:
        """Create a zero entry for a first-seen name. Returns True if created."""
        if name in self._points:
            return False
        self._points[name] = 0
        return True

    def award(self, name: str, points: int = 1) -> int:
        self._points[name] = self._points.get(name, 0) + points
        return self._points[name]

    def award_all(self, names: Iterable[str]) -> None:
        # One point per entry: a name held by both participants gets two
        for name in names:
            self.award(name)

    def points(self, name: str) -> int:
        return self._points.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._points)

    def __contains__(self, name: str) -> bool:
        return name in self._points
