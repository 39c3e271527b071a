"""Pygame UI shell for the adaptive math trainer.

Screens:
- Practice (adaptive problems from RecommendationEngine via PracticeSession)
- Progress (performance state + analysis)

Deterministic timing/scoring/RNG/state lives in the core modules; this layer
only renders and captures input. The learner's state is loaded from and saved
to SQLite at the edges of the run.
"""

from __future__ import annotations

import logging
import os
import random
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .analysis import level_title
from .clock import RealClock
from .engine import RecommendationEngine
from .persistence import load_state, record_session, save_state
from .practice_core import InvalidStateError
from .results import session_result
from .session import PracticeSession, SessionPhase

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

DB_PATH_ENV = "ADAPTIVE_TRAINER_DB_PATH"
DEFAULT_LEARNER_ID = "default"

_BG = (3, 9, 78)
_TEXT = (238, 245, 255)
_MUTED = (186, 200, 224)
_GOOD = (180, 220, 180)
_BAD = (220, 180, 180)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class LearnerStore:
    """Loads and saves one learner's engine state; failures are logged, not fatal."""

    def __init__(self, db_path: Path, learner_id: str = DEFAULT_LEARNER_ID) -> None:
        self._db_path = db_path
        self._learner_id = learner_id

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(DB_PATH_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".adaptive_trainer" / "progress.sqlite3"

    def load_into(self, engine: RecommendationEngine) -> None:
        try:
            state = load_state(db_path=self._db_path, learner_id=self._learner_id, config=engine.config)
        except (sqlite3.Error, OSError, InvalidStateError) as exc:
            logger.warning("could not load saved progress from %s: %s", self._db_path, exc)
            return
        if state is not None:
            engine.restore(state)

    def save_from(self, engine: RecommendationEngine) -> None:
        try:
            save_state(db_path=self._db_path, learner_id=self._learner_id, state=engine.get_performance_state())
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not save progress to %s: %s", self._db_path, exc)

    def record(self, session: PracticeSession) -> None:
        result = session_result(session)
        if result.attempted == 0:
            return
        try:
            record_session(db_path=self._db_path, learner_id=self._learner_id, result=result)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("could not record session to %s: %s", self._db_path, exc)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        surface.fill(_BG)
        title = self._title_font.render(self._title, True, _TEXT)
        surface.blit(title, (40, 40))
        y = 120
        for i, item in enumerate(self._items):
            selected = i == self._selected
            label = f"> {item.label}" if selected else f"  {item.label}"
            text = self._item_font.render(label, True, _TEXT if selected else _MUTED)
            surface.blit(text, (60, y))
            y += 44


class PracticeScreen:
    """Adaptive practice loop.

    * Multiple-choice problems: keys 1-4 pick an option.
    * Free-entry problems: type digits (and a leading minus), Enter submits.
    * Tab skips the problem (counts as incorrect).
    * After feedback, Enter/Space moves on. Esc leaves and saves progress.
    """

    def __init__(self, app: App, *, session: PracticeSession, on_exit: Callable[[PracticeSession], None]) -> None:
        self._app = app
        self._session = session
        self._on_exit = on_exit
        self._input = ""
        self._small_font = pygame.font.Font(None, 26)
        self._session.next_problem()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._on_exit(self._session)
            self._app.pop()
            return

        if self._session.phase is SessionPhase.FEEDBACK:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._input = ""
                self._session.next_problem()
            return

        problem = self._session.current_problem
        if problem is None:
            return
        if event.key == pygame.K_TAB:
            self._session.skip()
            return

        if problem.is_multiple_choice:
            if event.unicode in ("1", "2", "3", "4"):
                self._session.choose_option(int(event.unicode) - 1)
            return

        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._session.submit_answer(self._input):
                self._input = ""
        elif event.key in (pygame.K_BACKSPACE, pygame.K_DELETE):
            self._input = self._input[:-1]
        elif event.key == pygame.K_MINUS:
            if not self._input:
                self._input = "-"
        elif event.unicode and event.unicode.isdigit():
            self._input += event.unicode

    def render(self, surface: pygame.Surface) -> None:
        surface.fill(_BG)
        font = self._app.font
        engine = self._session.engine
        state = engine.get_performance_state()

        header = f"Level {state.current_difficulty} - {level_title(state.current_difficulty)}"
        surface.blit(font.render(header, True, _TEXT), (40, 30))
        stats = f"Accuracy {state.accuracy:.0f}%   Streak {state.consecutive_correct}   Solved {state.total_problems}"
        surface.blit(self._small_font.render(stats, True, _MUTED), (40, 70))

        problem = self._session.current_problem
        if problem is not None:
            surface.blit(font.render(problem.question_text, True, _TEXT), (60, 140))
            if problem.choices is not None:
                for i, choice in enumerate(problem.choices):
                    line = self._small_font.render(f"{i + 1})  {choice}", True, _TEXT)
                    surface.blit(line, (80 + i * 160, 200))
            else:
                surface.blit(font.render(f"Answer: {self._input}", True, _TEXT), (60, 200))

        remaining = self._session.time_remaining_s()
        if remaining is not None:
            colour = _BAD if remaining <= 0.0 else _MUTED
            surface.blit(self._small_font.render(f"Time: {int(remaining)}s", True, colour), (40, 260))

        fb = self._session.feedback
        if fb is not None:
            surface.blit(font.render(fb.message, True, _GOOD if fb.is_correct else _BAD), (60, 300))
            surface.blit(self._small_font.render(engine.get_encouragement(), True, _MUTED), (60, 345))

        hint = "1-4 choose | Tab skip | Esc back" if problem is not None and problem.is_multiple_choice else (
            "Type answer, Enter submit | Tab skip | Esc back"
        )
        if self._session.phase is SessionPhase.FEEDBACK:
            hint = "Enter for next problem | Esc back"
        surface.blit(self._small_font.render(hint, True, _MUTED), (40, surface.get_height() - 50))


class ProgressScreen:
    def __init__(self, app: App, *, engine: RecommendationEngine) -> None:
        self._app = app
        self._engine = engine

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        surface.fill(_BG)
        font = self._app.font
        state = self._engine.get_performance_state()
        analysis = self._engine.get_analysis()

        lines = [
            "Progress",
            "",
            f"Problems solved: {state.total_problems}",
            f"Accuracy: {state.accuracy:.0f}%",
            f"Average time: {state.average_time_s:.1f}s",
            f"Level: {state.current_difficulty} ({level_title(state.current_difficulty)})",
            f"Strongest: {analysis.strongest_type.value}   Weakest: {analysis.weakest_type.value}",
            f"Focus on: {analysis.recommended_focus.value}   Trend: {analysis.overall_trend.value}",
            "",
            self._engine.get_encouragement(),
        ]
        y = 40
        for line in lines:
            surface.blit(font.render(line, True, _TEXT), (40, y))
            y += 40


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    db_path: Path | None = None,
    seed: int | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Adaptive Math Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    store = LearnerStore(db_path if db_path is not None else LearnerStore.default_path())
    engine = RecommendationEngine(seed=seed if seed is not None else _new_seed())
    store.load_into(engine)

    real_clock = RealClock()

    def finish_practice(session: PracticeSession) -> None:
        store.record(session)
        store.save_from(engine)

    def open_practice() -> None:
        app.push(
            PracticeScreen(
                app,
                session=PracticeSession(engine, clock=real_clock),
                on_exit=finish_practice,
            )
        )

    def reset_progress() -> None:
        engine.reset()
        store.save_from(engine)

    main_items = [
        MenuItem("Practice", open_practice),
        MenuItem("Progress", lambda: app.push(ProgressScreen(app, engine=engine))),
        MenuItem("Reset progress", reset_progress),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Adaptive Math Trainer", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        store.save_from(engine)
        pygame.quit()

    return 0
