from secret_santa.services.assignment import (
    GenerationConfig,
    GenerationResult,
    generate_assignments,
    validate_assignments,
)
from secret_santa.services.snapshot import SnapshotError

__all__ = [
    "GenerationConfig",
    "GenerationResult",
    "generate_assignments",
    "validate_assignments",
    "SnapshotError",
]
