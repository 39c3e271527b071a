from __future__ import annotations

from dataclasses import dataclass

from .practice_core import (
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    EngineConfig,
    OperationType,
    Problem,
    SeededRng,
)


@dataclass(frozen=True, slots=True)
class DifficultyBand:
    operand_min: int
    operand_max: int  # exclusive
    time_limit_s: int


DIFFICULTY_BANDS: dict[int, DifficultyBand] = {
    1: DifficultyBand(1, 10, 45),
    2: DifficultyBand(2, 20, 40),
    3: DifficultyBand(5, 50, 35),
    4: DifficultyBand(10, 100, 30),
    5: DifficultyBand(20, 200, 25),
}

# Fraction of the time limit a learner is expected to need.
EXPECTED_TIME_FACTOR: dict[OperationType, float] = {
    OperationType.ADDITION: 0.6,
    OperationType.SUBTRACTION: 0.7,
    OperationType.MULTIPLICATION: 0.8,
    OperationType.DIVISION: 1.0,
}

_SYMBOLS: dict[OperationType, str] = {
    OperationType.ADDITION: "+",
    OperationType.SUBTRACTION: "-",
    OperationType.MULTIPLICATION: "×",
    OperationType.DIVISION: "÷",
}

CHOICE_COUNT = 4


class ProblemGenerator:
    """Builds concrete exercises for a (type, difficulty) pair.

    Deterministic given the seed: operands, filler distractors and option
    order all come from the injected ``SeededRng``. Problem ids use a
    per-generator sequence number instead of wall time.
    """

    def __init__(self, *, seed: int | None = None, rng: SeededRng | None = None, config: EngineConfig | None = None) -> None:
        self._rng = rng if rng is not None else SeededRng(seed)
        self._config = config or EngineConfig()
        self._sequence = 0

    def generate(self, type: OperationType, difficulty: int) -> Problem:
        op = OperationType(type)
        if not (MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY):
            raise ValueError(f"difficulty must be in [{MIN_DIFFICULTY}, {MAX_DIFFICULTY}], got {difficulty}")

        band = DIFFICULTY_BANDS[difficulty]
        a = self._rng.randrange(band.operand_min, band.operand_max)
        b = self._rng.randrange(band.operand_min, band.operand_max)

        if op is OperationType.ADDITION:
            left, right, answer = a, b, a + b
        elif op is OperationType.SUBTRACTION:
            if a < b:
                a, b = b, a
            left, right, answer = a, b, a - b
        elif op is OperationType.MULTIPLICATION:
            # Shrink operands so products stay tractable.
            a = max(1, a // (difficulty + 1))
            b = max(1, b // (difficulty + 1))
            left, right, answer = a, b, a * b
        else:
            # Build the dividend from the quotient so division is exact.
            b = max(1, b // difficulty)
            left, right, answer = a * b, b, a

        choices: tuple[int, ...] | None = None
        if difficulty <= self._config.multiple_choice_max_difficulty:
            choices = tuple(self.distractor_options(answer, op))

        self._sequence += 1
        return Problem(
            id=f"{op.value}-{difficulty}-{self._sequence}",
            type=op,
            difficulty=difficulty,
            question_text=f"{left} {_SYMBOLS[op]} {right} = ?",
            correct_answer=answer,
            choices=choices,
            time_limit_s=band.time_limit_s,
            expected_solve_s=band.time_limit_s * EXPECTED_TIME_FACTOR[op],
        )

    def distractor_options(self, correct: int, type: OperationType) -> list[int]:
        """Return ``CHOICE_COUNT`` shuffled options containing ``correct`` once."""

        options = [correct]
        for candidate in typical_mistakes(correct, OperationType(type)):
            if len(options) >= CHOICE_COUNT:
                break
            if candidate > 0 and candidate not in options:
                options.append(candidate)

        # Random filler near the correct answer; re-roll a bounded number of times.
        for _ in range(100):
            if len(options) >= CHOICE_COUNT:
                break
            offset = self._rng.randint(-10, 9)
            candidate = max(1, correct + offset)
            if candidate not in options:
                options.append(candidate)

        # Fallback: guarantee four distinct values.
        step = 1
        while len(options) < CHOICE_COUNT:
            candidate = max(1, correct) + step
            if candidate not in options:
                options.append(candidate)
            step += 1

        return self._rng.shuffled(options)


def typical_mistakes(correct: int, type: OperationType) -> list[int]:
    """Plausible wrong answers a learner tends to give for this operation."""

    if type is OperationType.ADDITION:
        return [correct - 1, correct + 1]
    if type is OperationType.SUBTRACTION:
        return [correct + 1, correct - 1]
    if type is OperationType.MULTIPLICATION:
        return [correct + 10, correct - 10]
    return [correct * 2, correct // 2]
