"""Progress callback service for unified status updates across the application."""

from typing import Callable, Dict, Optional

# Stage name -> percentage complete, in pipeline order.
PROGRESS_STAGES: Dict[str, int] = {
    "Starting": 0,
    "Getting options": 5,
    "Loading file": 10,
    "Expanding file": 20,
    "Extracting data": 30,
    "Parsing JSON": 55,
    "Processing sections": 60,
    "Cleaning course": 65,
    "Assembling files": 70,
    "Writing file": 75,
    "Download": 100,
}


class ProgressService:
    """Centralized service for managing progress callbacks and status updates.

    Callbacks receive the stage name and its percentage; unknown stages are
    reported with ``None``.
    """

    def __init__(self, callback: Optional[Callable[[str, Optional[int]], None]] = None):
        self._current_callback = callback

    def set_callback(self, callback: Optional[Callable[[str, Optional[int]], None]]) -> None:
        """Set the current progress callback."""
        self._current_callback = callback

    def update(self, stage: str) -> None:
        """Send progress update if callback is available."""
        if self._current_callback:
            self._current_callback(stage, PROGRESS_STAGES.get(stage))
