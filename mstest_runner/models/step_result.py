"""
Step Result
Outcome of one MSTest build step, as returned to the HTTP caller.
"""
from dataclasses import dataclass, field


@dataclass
class StepResult:
    """
    Fields
    ------
    success : bool
        True only when MSTest exited with code 0.
    command : list[str]
        The launched command; empty when the step failed before launch.
    log : str
        Full build log of the step.
    log_excerpt : str
        First and last lines of the log for previews.
    execution_time_seconds : float
        Wall clock duration of the step.
    """
    success: bool = False
    command: list[str] = field(default_factory=list)
    log: str = ""
    log_excerpt: str = ""
    execution_time_seconds: float = 0.0
