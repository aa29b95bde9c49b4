from dataclasses import dataclass
from typing import Any, Dict, Optional

WORK = 'work'
BREAK = 'break'
PHASES = (WORK, BREAK)

DEFAULT_DURATIONS_MS: Dict[str, int] = {
    WORK: 25 * 60 * 1000,
    BREAK: 5 * 60 * 1000,
}


@dataclass
class PhaseTimer:
    """Shared work/break countdown for one room.

    ``end_at`` is an epoch-millisecond deadline and is only set while the
    timer runs. Phases always alternate work -> break -> work.
    """

    is_running: bool = False
    phase: str = WORK
    end_at: Optional[int] = None

    def start(self, now_ms: int, durations: Dict[str, int]) -> bool:
        if self.is_running:
            return False
        self.is_running = True
        self.end_at = now_ms + durations[self.phase]
        return True

    def reset(self) -> None:
        self.is_running = False
        self.phase = WORK
        self.end_at = None

    def is_due(self, now_ms: int) -> bool:
        return self.is_running and self.end_at is not None and now_ms >= self.end_at

    def advance(self, now_ms: int, durations: Dict[str, int]) -> str:
        """Flip to the next phase and return the one that just expired."""
        expired = self.phase
        self.phase = BREAK if expired == WORK else WORK
        self.end_at = now_ms + durations[self.phase]
        return expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isRunning': self.is_running,
            'phase': self.phase,
            'endAt': self.end_at,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PhaseTimer':
        data = data or {}
        phase = data.get('phase') if data.get('phase') in PHASES else WORK
        end_at = data.get('endAt')
        is_running = bool(data.get('isRunning')) and end_at is not None
        return cls(
            is_running=is_running,
            phase=phase,
            end_at=int(end_at) if is_running else None,
        )
