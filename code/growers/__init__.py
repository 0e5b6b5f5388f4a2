from .growing_tree import run_growing_tree_grower
from .loop_injection import run_loop_injection_grower

__all__ = [
    "run_growing_tree_grower",
    "run_loop_injection_grower",
]
