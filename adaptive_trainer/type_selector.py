from __future__ import annotations

from collections.abc import Sequence

from .practice_core import ALL_TYPES, EngineConfig, OperationType, PerformanceState


class TypeSelector:
    """Chooses the next operation category.

    During warm-up the categories are served round-robin. Afterwards weak
    categories (accuracy below ``weak_accuracy``) are remediated first, then
    the least practiced category is chosen; the previous category is never
    repeated while an alternative exists.
    """

    def __init__(
        self,
        *,
        config: EngineConfig | None = None,
        categories: Sequence[OperationType] = ALL_TYPES,
    ) -> None:
        if not categories:
            raise ValueError("categories must not be empty")
        # Keep declaration order regardless of the order passed in.
        wanted = {OperationType(c) for c in categories}
        self._categories = tuple(t for t in ALL_TYPES if t in wanted)
        self._config = config or EngineConfig()
        self._rotation_index = 0

    @property
    def categories(self) -> tuple[OperationType, ...]:
        return self._categories

    def reset(self) -> None:
        self._rotation_index = 0

    def next_type(self, state: PerformanceState, last_type: OperationType | None) -> OperationType:
        cats = self._categories

        if state.total_problems < self._config.warmup_problems:
            chosen = cats[self._rotation_index % len(cats)]
            self._rotation_index += 1
            return chosen

        candidates = [t for t in cats if t is not last_type]

        weak = [t for t in candidates if state.type_stats[t].accuracy < self._config.weak_accuracy]
        if weak:
            # min() keeps the first of equal keys, i.e. declaration order.
            return min(weak, key=lambda t: state.type_stats[t].accuracy)

        if candidates:
            return min(candidates, key=lambda t: state.type_stats[t].count)

        self._rotation_index += 1
        return cats[self._rotation_index % len(cats)]
