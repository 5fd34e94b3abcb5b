"""
Unified simulation clock
Maps integer ticks to virtual milliseconds; one instance per simulation run
"""


class UnifiedTimeManager:
    """Tick counter with a fixed tick duration"""

    def __init__(self, tick_duration_ms: float = 1000.0):
        if tick_duration_ms <= 0:
            raise ValueError("tick_duration_ms must be positive")
        self.tick_duration_ms = tick_duration_ms
        self.current_step = 0

    def reset(self):
        self.current_step = 0

    def advance_step(self) -> int:
        self.current_step += 1
        return self.current_step

    def set_step(self, step: int):
        self.current_step = step

    def get_simulation_time(self) -> float:
        """Virtual time of the current step in ms"""
        return self.current_step * self.tick_duration_ms

    def ticks_for(self, duration_ms: float) -> int:
        """Whole ticks needed to cover duration_ms (at least one)"""
        ticks = -(-duration_ms // self.tick_duration_ms)
        return max(1, int(ticks))
