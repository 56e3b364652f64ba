"""Pygame UI shell for Endocrine ER: Code Red.

One screen, four views (start, case in progress, won, lost). All timing,
scoring, RNG and state live in endocrine_er/shift_core.py; this module only
renders ShiftSnapshot data and forwards answer selections.
"""

from __future__ import annotations

import logging
import os
import random
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import pygame

from .clock import RealClock
from .logging_config import configure_logging
from .persistence import default_db_path, record_shift
from .results import shift_result_from_session
from .scenarios import KEY_TAKEAWAYS, Difficulty
from .shift_core import Phase, ShiftSession, ShiftSnapshot, build_shift_session
from .view_model import (
    LOSS_QUOTE,
    START_RULES,
    HealthBand,
    OptionView,
    feedback_is_positive,
    format_time_left,
    headline,
    health_band,
    option_for_hotkey,
    option_views,
    timer_is_urgent,
)

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
SEED_ENV = "ENDOCRINE_ER_SEED"

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (15, 23, 42)
PANEL_BG = (30, 41, 59)
INSET_BG = (20, 29, 48)
BORDER = (51, 65, 85)
TEXT_MAIN = (241, 245, 249)
TEXT_MUTED = (148, 163, 184)
ACCENT_BLUE = (96, 165, 250)
ACCENT_RED = (239, 68, 68)
ACCENT_YELLOW = (234, 179, 8)
ACCENT_GREEN = (34, 197, 94)

HEALTH_COLORS = {
    HealthBand.STABLE: ACCENT_GREEN,
    HealthBand.GUARDED: ACCENT_YELLOW,
    HealthBand.CRITICAL: (220, 38, 38),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

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


class ShiftScreen:
    def __init__(
        self,
        app: App,
        *,
        session_factory: Callable[[int], ShiftSession],
        seed_source: Callable[[], int],
        on_finished: Callable[[ShiftSession, int], None] | None = None,
    ) -> None:
        self._app = app
        self._session_factory = session_factory
        self._seed_source = seed_source
        self._seed = seed_source()
        self._session = session_factory(self._seed)
        self._on_finished = on_finished
        self._finish_reported = False

        self._title_font = pygame.font.Font(None, 64)
        self._mid_font = pygame.font.Font(None, 40)
        self._small_font = pygame.font.Font(None, 26)
        self._tiny_font = pygame.font.Font(None, 20)

        # Mouse hitboxes, refreshed during render.
        self._option_hitboxes: list[tuple[pygame.Rect, str]] = []
        self._action_hitbox: pygame.Rect | None = None

    @property
    def session(self) -> ShiftSession:
        return self._session

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def option_hitboxes(self) -> tuple[tuple[pygame.Rect, str], ...]:
        return tuple(self._option_hitboxes)

    def answer_selected(self, option: str) -> bool:
        return self._session.submit_answer(option)

    def handle_event(self, event: pygame.event.Event) -> None:
        snap = self._session.snapshot()

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self._session.close()
                self._app.quit()
                return
            if snap.phase is Phase.IN_PROGRESS:
                hotkey = self._choice_from_key(event.key)
                if hotkey is None:
                    return
                option = option_for_hotkey(snap, hotkey)
                if option is not None:
                    self.answer_selected(option)
                return
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._start()
            return

        if event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            pos = getattr(event, "pos", None)
            if pos is None:
                return
            if snap.phase is Phase.IN_PROGRESS:
                if snap.feedback is not None:
                    return
                for rect, option in self._option_hitboxes:
                    if rect.collidepoint(pos):
                        self.answer_selected(option)
                        return
                return
            if self._action_hitbox is not None and self._action_hitbox.collidepoint(pos):
                self._start()

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._session.snapshot()
        self._report_if_finished(snap)

        self._option_hitboxes = []
        self._action_hitbox = None

        if snap.phase is Phase.IN_PROGRESS:
            self._render_case(surface, snap)
        elif snap.phase is Phase.WON:
            self._render_won(surface, snap)
        elif snap.phase is Phase.LOST:
            self._render_lost(surface, snap)
        else:
            self._render_start(surface, snap)

    def _start(self) -> None:
        # Every shift gets its own seed so a stored result can be replayed.
        self._session.close()
        self._seed = self._seed_source()
        self._session = self._session_factory(self._seed)
        self._finish_reported = False
        self._option_hitboxes = []
        logger.info("Starting shift (seed=%d)", self._seed)
        self._session.start()

    def _report_if_finished(self, snap: ShiftSnapshot) -> None:
        if self._finish_reported or snap.phase not in (Phase.WON, Phase.LOST):
            return
        self._finish_reported = True
        summary = self._session.summary()
        logger.info(
            "Shift %s: %d/%d correct, best streak %d, vitality %d%%",
            snap.phase.value,
            summary.correct,
            summary.cases_answered,
            summary.best_streak,
            summary.display_health,
        )
        if self._on_finished is not None:
            self._on_finished(self._session, self._seed)

    def _render_start(self, surface: pygame.Surface, snap: ShiftSnapshot) -> None:
        w, h = surface.get_size()
        surface.fill(BG)
        head = headline(snap)

        card = pygame.Rect(0, 0, min(520, w - 40), min(420, h - 40))
        card.center = (w // 2, h // 2)
        pygame.draw.rect(surface, PANEL_BG, card, border_radius=16)
        pygame.draw.rect(surface, BORDER, card, 1, border_radius=16)

        self._draw_pulse(surface, (card.centerx, card.y + 56), radius=26)

        title = self._title_font.render(head.title, True, ACCENT_RED)
        surface.blit(title, title.get_rect(center=(card.centerx, card.y + 118)))
        sub = self._small_font.render(head.subtitle, True, TEXT_MUTED)
        surface.blit(sub, sub.get_rect(center=(card.centerx, card.y + 158)))

        rules = pygame.Rect(card.x + 24, card.y + 186, card.w - 48, 96)
        pygame.draw.rect(surface, INSET_BG, rules, border_radius=8)
        pygame.draw.rect(surface, BORDER, rules, 1, border_radius=8)
        bullet_colors = (ACCENT_YELLOW, ACCENT_BLUE, ACCENT_RED)
        y = rules.y + 12
        for line, color in zip(START_RULES, bullet_colors):
            pygame.draw.circle(surface, color, (rules.x + 16, y + 9), 5)
            txt = self._small_font.render(line, True, TEXT_MAIN)
            surface.blit(txt, (rules.x + 32, y))
            y += 26

        self._draw_action_button(surface, card, head.action_label, (220, 38, 38))

    def _render_won(self, surface: pygame.Surface, snap: ShiftSnapshot) -> None:
        w, h = surface.get_size()
        surface.fill((2, 44, 34))
        head = headline(snap)

        title = self._title_font.render(head.title, True, (52, 211, 153))
        surface.blit(title, title.get_rect(center=(w // 2, max(60, h // 6))))
        sub = self._small_font.render(head.subtitle, True, (209, 250, 229))
        surface.blit(sub, sub.get_rect(center=(w // 2, max(100, h // 6 + 44))))

        box = pygame.Rect(0, 0, min(560, w - 40), 40 + 28 * len(KEY_TAKEAWAYS))
        box.center = (w // 2, h // 2 + 10)
        pygame.draw.rect(surface, (6, 78, 59), box, border_radius=12)
        pygame.draw.rect(surface, (4, 120, 87), box, 1, border_radius=12)
        label = self._small_font.render("Key Takeaways:", True, TEXT_MAIN)
        surface.blit(label, (box.x + 16, box.y + 10))
        y = box.y + 40
        for line in KEY_TAKEAWAYS:
            txt = self._tiny_font.render(f"- {line}", True, (167, 243, 208))
            surface.blit(txt, (box.x + 24, y))
            y += 28

        stats = self._tiny_font.render(
            f"Correct {snap.correct_count}/{snap.answered_count}  |  Best streak {snap.best_streak}",
            True,
            (167, 243, 208),
        )
        surface.blit(stats, stats.get_rect(center=(w // 2, box.bottom + 18)))

        area = pygame.Rect(0, box.bottom + 24, w, h - box.bottom - 24)
        self._draw_action_button(surface, area, head.action_label, (5, 150, 105))

    def _render_lost(self, surface: pygame.Surface, snap: ShiftSnapshot) -> None:
        w, h = surface.get_size()
        surface.fill((69, 10, 10))
        head = headline(snap)

        title = self._title_font.render(head.title, True, ACCENT_RED)
        surface.blit(title, title.get_rect(center=(w // 2, h // 3 - 20)))
        sub = self._mid_font.render(head.subtitle, True, (254, 202, 202))
        surface.blit(sub, sub.get_rect(center=(w // 2, h // 3 + 30)))

        quote_rect = pygame.Rect(w // 2 - min(260, w // 2 - 20), h // 3 + 70, min(520, w - 40), 72)
        self._draw_wrapped_text(
            surface,
            LOSS_QUOTE,
            quote_rect,
            color=(203, 213, 225),
            font=self._small_font,
            max_lines=3,
        )

        area = pygame.Rect(0, quote_rect.bottom, w, h - quote_rect.bottom)
        self._draw_action_button(surface, area, head.action_label, PANEL_BG)

    def _render_case(self, surface: pygame.Surface, snap: ShiftSnapshot) -> None:
        w, h = surface.get_size()
        surface.fill(BG)
        scenario = snap.scenario
        if scenario is None:
            return

        # HUD
        hud = pygame.Rect(0, 0, w, 56)
        pygame.draw.rect(surface, PANEL_BG, hud)
        pygame.draw.line(surface, BORDER, (0, hud.bottom), (w, hud.bottom), 1)

        surface.blit(self._tiny_font.render("PATIENT VITALITY", True, TEXT_MUTED), (20, 8))
        bar = pygame.Rect(20, 26, 200, 18)
        pygame.draw.rect(surface, INSET_BG, bar, border_radius=9)
        fill_w = int(bar.w * snap.display_health / max(1, snap.max_health))
        if fill_w > 0:
            fill = pygame.Rect(bar.x, bar.y, fill_w, bar.h)
            pygame.draw.rect(surface, HEALTH_COLORS[health_band(snap.display_health)], fill, border_radius=9)
        pygame.draw.rect(surface, (71, 85, 105), bar, 1, border_radius=9)
        pct = self._tiny_font.render(f"{snap.display_health}%", True, TEXT_MAIN)
        surface.blit(pct, pct.get_rect(center=bar.center))

        surface.blit(self._tiny_font.render("CASE", True, TEXT_MUTED), (250, 8))
        case_txt = self._small_font.render(f"{snap.case_number} / {snap.case_count}", True, ACCENT_BLUE)
        surface.blit(case_txt, (250, 26))

        if snap.streak > 1:
            streak = self._tiny_font.render(f"STREAK x{snap.streak}", True, ACCENT_GREEN)
            surface.blit(streak, (340, 30))

        urgent = timer_is_urgent(snap.time_remaining_s)
        timer = self._mid_font.render(
            format_time_left(snap.time_remaining_s),
            True,
            ACCENT_RED if urgent else TEXT_MAIN,
        )
        surface.blit(timer, timer.get_rect(midright=(w - 20, hud.centery)))

        # Scenario card
        margin = max(12, min(28, w // 34))
        card = pygame.Rect(margin, hud.bottom + 12, w - margin * 2, max(150, h // 3))
        pygame.draw.rect(surface, PANEL_BG, card, border_radius=12)
        pygame.draw.rect(surface, BORDER, card, 1, border_radius=12)

        title = self._small_font.render(
            self._fit_label(self._small_font, scenario.title, card.w - 140), True, ACCENT_BLUE
        )
        surface.blit(title, (card.x + 14, card.y + 12))

        hard = scenario.difficulty is Difficulty.HARD
        badge_color = (248, 113, 113) if hard else (250, 204, 21)
        badge_txt = self._tiny_font.render(scenario.difficulty.value, True, badge_color)
        badge = badge_txt.get_rect(topright=(card.right - 16, card.y + 14)).inflate(16, 8)
        pygame.draw.rect(surface, badge_color, badge, 1, border_radius=10)
        surface.blit(badge_txt, badge_txt.get_rect(center=badge.center))

        half_h = (card.h - 48) // 2
        complaint = pygame.Rect(card.x + 14, card.y + 42, card.w - 28, half_h)
        history = pygame.Rect(card.x + 14, complaint.bottom + 4, card.w - 28, half_h)
        self._draw_labelled_block(surface, complaint, "CHIEF COMPLAINT", scenario.symptoms, ACCENT_YELLOW)
        self._draw_labelled_block(surface, history, "HISTORY & VITALS", scenario.history, ACCENT_BLUE)

        y = card.bottom + 10
        if snap.feedback is not None:
            positive = feedback_is_positive(snap)
            fb_color = ACCENT_GREEN if positive else ACCENT_RED
            fb = pygame.Rect(card.x, y, card.w, 64)
            pygame.draw.rect(surface, (20, 40, 36) if positive else (50, 22, 30), fb, border_radius=10)
            pygame.draw.rect(surface, fb_color, fb, 1, border_radius=10)
            surface.blit(self._small_font.render(snap.feedback.title, True, fb_color), (fb.x + 12, fb.y + 6))
            self._draw_wrapped_text(
                surface,
                snap.feedback.message,
                pygame.Rect(fb.x + 12, fb.y + 28, fb.w - 24, fb.h - 30),
                color=TEXT_MAIN,
                font=self._tiny_font,
                max_lines=2,
            )
            y = fb.bottom + 10

        # Options: 2x2 grid
        views = option_views(snap)
        gap = 10
        col_w = (card.w - gap) // 2
        row_h = max(36, min(56, (h - y - margin - gap) // 2))
        for idx, view in enumerate(views):
            col = idx % 2
            row = idx // 2
            rect = pygame.Rect(card.x + col * (col_w + gap), y + row * (row_h + gap), col_w, row_h)
            self._draw_option(surface, rect, view)
            if view.enabled:
                self._option_hitboxes.append((rect, view.label))

    def _draw_option(self, surface: pygame.Surface, rect: pygame.Rect, view: OptionView) -> None:
        if view.highlight:
            fill, outline, text_color = (22, 163, 74), (74, 222, 128), TEXT_MAIN
        elif view.dimmed:
            fill, outline, text_color = (24, 33, 51), (40, 52, 70), (90, 102, 120)
        else:
            fill, outline, text_color = PANEL_BG, BORDER, TEXT_MAIN
        pygame.draw.rect(surface, fill, rect, border_radius=10)
        pygame.draw.rect(surface, outline, rect, 2, border_radius=10)

        key = self._tiny_font.render(str(view.hotkey), True, ACCENT_BLUE if view.enabled else text_color)
        surface.blit(key, key.get_rect(midleft=(rect.x + 12, rect.centery)))
        label = self._fit_label(self._small_font, view.label, rect.w - 44)
        txt = self._small_font.render(label, True, text_color)
        surface.blit(txt, txt.get_rect(midleft=(rect.x + 34, rect.centery)))

    def _draw_labelled_block(
        self,
        surface: pygame.Surface,
        rect: pygame.Rect,
        label: str,
        body: str,
        stripe: tuple[int, int, int],
    ) -> None:
        pygame.draw.rect(surface, INSET_BG, rect, border_radius=6)
        pygame.draw.rect(surface, stripe, pygame.Rect(rect.x, rect.y, 4, rect.h))
        surface.blit(self._tiny_font.render(label, True, TEXT_MUTED), (rect.x + 12, rect.y + 4))
        self._draw_wrapped_text(
            surface,
            body,
            pygame.Rect(rect.x + 12, rect.y + 20, rect.w - 20, max(0, rect.h - 22)),
            color=TEXT_MAIN,
            font=self._tiny_font,
            max_lines=max(1, (rect.h - 22) // (self._tiny_font.get_linesize() + 2)),
        )

    def _draw_action_button(
        self,
        surface: pygame.Surface,
        area: pygame.Rect,
        label: str,
        color: tuple[int, int, int],
    ) -> None:
        txt = self._mid_font.render(label, True, TEXT_MAIN)
        button = txt.get_rect().inflate(56, 24)
        button.midbottom = (area.centerx, area.bottom - 24)
        pygame.draw.rect(surface, color, button, border_radius=12)
        pygame.draw.rect(surface, (100, 116, 139), button, 1, border_radius=12)
        surface.blit(txt, txt.get_rect(center=button.center))
        hint = self._tiny_font.render("Enter/Space or click", True, TEXT_MUTED)
        surface.blit(hint, hint.get_rect(midtop=(button.centerx, button.bottom + 4)))
        self._action_hitbox = button

    @staticmethod
    def _draw_pulse(surface: pygame.Surface, center: tuple[int, int], *, radius: int) -> None:
        beat = (pygame.time.get_ticks() // 400) % 2
        pygame.draw.circle(surface, ACCENT_RED, center, radius + (3 if beat else 0))
        cx, cy = center
        points = [
            (cx - radius + 4, cy),
            (cx - 8, cy),
            (cx - 3, cy - 10),
            (cx + 3, cy + 10),
            (cx + 8, cy),
            (cx + radius - 4, cy),
        ]
        pygame.draw.lines(surface, BG, False, points, 3)

    @staticmethod
    def _choice_from_key(key: int) -> int | None:
        mapping = {
            pygame.K_1: 1,
            pygame.K_2: 2,
            pygame.K_3: 3,
            pygame.K_4: 4,
            pygame.K_KP1: 1,
            pygame.K_KP2: 2,
            pygame.K_KP3: 3,
            pygame.K_KP4: 4,
        }
        return mapping.get(key)

    @staticmethod
    def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
        if max_width <= 0:
            return ""
        if font.size(label)[0] <= max_width:
            return label
        clipped = label
        while clipped and font.size(f"{clipped}...")[0] > max_width:
            clipped = clipped[:-1]
        return f"{clipped}..." if clipped else "..."

    def _draw_wrapped_text(
        self,
        surface: pygame.Surface,
        text: str,
        rect: pygame.Rect,
        *,
        color: tuple[int, int, int],
        font: pygame.font.Font,
        max_lines: int,
    ) -> None:
        words = str(text).split()
        lines: list[str] = []
        cur = ""
        for word in words:
            trial = word if cur == "" else f"{cur} {word}"
            if font.size(trial)[0] <= rect.w:
                cur = trial
                continue
            if cur:
                lines.append(cur)
            cur = word
        if cur:
            lines.append(cur)

        y = rect.y
        line_h = font.get_linesize() + 2
        for line in lines[: max(0, max_lines)]:
            to_draw = line
            if font.size(to_draw)[0] > rect.w:
                while to_draw and font.size(f"{to_draw}...")[0] > rect.w:
                    to_draw = to_draw[:-1]
                to_draw = f"{to_draw}..." if to_draw else "..."
            surface.blit(font.render(to_draw, True, color), (rect.x, y))
            y += line_h


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _seed_from_env() -> int:
    raw = os.environ.get(SEED_ENV, "").strip()
    if raw == "":
        return _new_seed()
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", SEED_ENV, raw)
        return _new_seed()


def _persist_shift(session: ShiftSession, *, seed: int, db_path: Path) -> None:
    try:
        result = shift_result_from_session(session, seed=seed)
        record_shift(db_path=db_path, result=result, app_version=APP_VERSION)
    except (sqlite3.Error, OSError):
        logger.exception("Could not record shift to %s", db_path)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    db_path: Path | None = None,
) -> int:
    configure_logging()
    pygame.init()

    pygame.display.set_caption("Endocrine ER: Code Red")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)

    real_clock = RealClock()
    results_path = db_path if db_path is not None else default_db_path()
    logger.info("Endocrine ER %s starting", APP_VERSION)

    screen = ShiftScreen(
        app,
        session_factory=lambda seed: build_shift_session(clock=real_clock, seed=seed),
        seed_source=_seed_from_env,
        on_finished=lambda s, seed: _persist_shift(s, seed=seed, db_path=results_path),
    )
    app.push(screen)

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
        screen.session.close()
        pygame.quit()

    return 0
