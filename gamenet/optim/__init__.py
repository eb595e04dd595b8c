from .schedule import CyclicSchedule, cyclic_schedule_value
from .nesterov import Nesterov
from .state import RunningOptimizerState, apply_update
from .policies import FixedAdaptive, CyclicMomentum, OptimizerPolicy

__all__ = [
    "CyclicSchedule", "cyclic_schedule_value",
    "Nesterov",
    "RunningOptimizerState", "apply_update",
    "FixedAdaptive", "CyclicMomentum", "OptimizerPolicy",
]
