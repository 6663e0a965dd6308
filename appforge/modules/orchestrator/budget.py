"""
Budget Guard - caps loop iterations and backend round-trips per run.

The two counters are independent: a single-tool backend may spend several
backend calls in one iteration, so either cap can trip first.
"""

from typing import Optional, Dict, Any


class BudgetGuard:
    def __init__(self, max_iterations: int, max_backend_calls: int):
        if max_iterations < 1 or max_backend_calls < 1:
            raise ValueError("Budget limits must be at least 1")
        self.max_iterations = max_iterations
        self.max_backend_calls = max_backend_calls
        self.iterations = 0
        self.backend_calls = 0

    def record_iteration(self) -> int:
        self.iterations += 1
        return self.iterations

    def record_backend_calls(self, count: int = 1) -> None:
        self.backend_calls += max(count, 0)

    @property
    def remaining_iterations(self) -> int:
        return max(self.max_iterations - self.iterations, 0)

    @property
    def remaining_backend_calls(self) -> int:
        return max(self.max_backend_calls - self.backend_calls, 0)

    def exhausted(self) -> Optional[str]:
        """Reason the budget is spent, or None while work may continue"""
        if self.iterations >= self.max_iterations:
            return f"Iteration limit reached ({self.max_iterations})"
        if self.backend_calls >= self.max_backend_calls:
            return f"Backend call limit reached ({self.max_backend_calls})"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "maxIterations": self.max_iterations,
            "backendCalls": self.backend_calls,
            "maxBackendCalls": self.max_backend_calls,
        }
