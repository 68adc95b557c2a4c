#!/usr/bin/env python3
"""
Orrery Viewer application entry point and UI/renderer coordination.

What this module does
- Starts three loops: a Pygame rendering thread (viewport), a fetch thread
  that drives the simulation session, and the Dear PyGui UI (running on the
  main thread).
- The ViewerSession (package `orrery`) owns the clock, the orbit history and
  the latest body states; every piece of it is guarded by its own lock, so
  the renderer and the UI only ever read whole, consistent values.
- The UI flips controller flags (play/pause, step size) and shows the current
  date, server status and per-body readouts.

Threading model
- FetchWorker issues at most one request at a time to the simulation service
  and applies results in order.
- PygameRenderer builds a scene model from the session each frame and draws
  either the top-down 2D trace or a projected 3D view.
- The UI class runs in the main thread via Dear PyGui and refreshes its
  readouts on a periodic frame callback.

Units and conventions
- Body states arrive in SI units; the scale transform maps them into pixels
  (2D) or render units (3D) once per received batch.
- Colors are RGB tuples in 0..255.

Running
1) Install dependencies: `pip install -e .`
2) Start the simulation service (default http://localhost:8080)
3) Run: `orrery-viewer [--config viewer.json] [--api-url URL] [--log-level DEBUG]`

Keys (viewport): Space = Start/Stop, V = switch 2D/3D, T = trails on/off.
"""

import argparse
import logging
import math
import sys
import threading
from typing import List, Optional, Tuple

# GUI and Rendering libs
import pygame
from pygame import gfxdraw
import dearpygui.dearpygui as dpg

from orrery.config import configure_logging, load_config, step_seconds
from orrery.constants import (
    BACKGROUND_COLOR,
    CAMERA_DISTANCE_3D,
    CAMERA_TILT_DEG,
    FOCAL_LENGTH_PX,
    HUD_COLOR,
    LABEL_COLOR,
    SAFE_COORD_LIMIT,
    STEP_UNIT_LABELS,
    TRAIL_COLOR,
)
from orrery.errors import ConfigError
from orrery.scene import SceneModel
from orrery.session import FetchWorker, ViewerSession

log = logging.getLogger("orrery_viewer")

# ============================================================
# Shared view settings
# ============================================================

class ViewState:
    """
    Presentation switches shared between the UI thread and the renderer thread.
    """
    def __init__(self, viewport: Tuple[int, int]):
        self.lock = threading.RLock()
        self.running = True
        self.mode = "2d"  # "2d" | "3d"
        self.show_trails = True
        self.show_labels = True
        self.viewport = viewport

    def toggle_mode(self) -> str:
        with self.lock:
            self.mode = "3d" if self.mode == "2d" else "2d"
            return self.mode

    def toggle_trails(self) -> bool:
        with self.lock:
            self.show_trails = not self.show_trails
            return self.show_trails


def format_date(dt) -> str:
    return f"{dt.day:02d}/{dt.month:02d}/{dt.year}"

# ============================================================
# Drawing helpers
# ============================================================

_cached_font = None

def draw_text(surface, text, x, y, color):
    global _cached_font
    if not pygame.font.get_init():
        try:
            pygame.font.init()
        except pygame.error:
            return
    if _cached_font is None:
        try:
            _cached_font = pygame.font.SysFont("consolas", 14)
        except Exception:
            _cached_font = pygame.font.Font(None, 16)
    img = _cached_font.render(text, True, color)
    surface.blit(img, (x, y))

def _safe_point(pt):
    try:
        x, y = int(pt[0]), int(pt[1])
    except (TypeError, ValueError, OverflowError):
        return None
    if -SAFE_COORD_LIMIT <= x <= SAFE_COORD_LIMIT and -SAFE_COORD_LIMIT <= y <= SAFE_COORD_LIMIT:
        return (x, y)
    return None

def project_3d(pos, center: Tuple[int, int], tilt_deg: float = CAMERA_TILT_DEG,
               distance: float = CAMERA_DISTANCE_3D, focal: float = FOCAL_LENGTH_PX) -> Optional[Tuple[float, float, float]]:
    """
    Fixed perspective camera looking at the origin from `distance` render
    units, tilted about the x axis. Returns (screen_x, screen_y, depth) or
    None for points behind the camera.
    """
    t = math.radians(tilt_deg)
    x, y, z = pos
    y_c = y * math.cos(t) - z * math.sin(t)
    z_c = y * math.sin(t) + z * math.cos(t)
    depth = distance - z_c
    if depth <= 1e-6:
        return None
    k = focal / depth
    return (center[0] + x * k, center[1] + y_c * k, depth)

# ============================================================
# Pygame Renderer Thread
# ============================================================

class PygameRenderer(threading.Thread):
    """
    Pygame loop: draws trails, bodies and labels from the session's scene
    model; handles viewport resizing and the keyboard shortcuts.
    """
    def __init__(self, session: ViewerSession, view: ViewState):
        super().__init__(daemon=True, name="orrery-render")
        self.session = session
        self.view = view
        self.surface = None
        self.clock = None
        self.running = True

    def run(self):
        pygame.init()
        pygame.display.set_caption("Orrery Viewer - Viewport")
        w, h = self.view.viewport
        self.surface = pygame.display.set_mode((w, h), pygame.RESIZABLE)
        self.session.builder.set_viewport(w, h)
        self.clock = pygame.time.Clock()

        while self.running and self.view.running:
            self.handle_events()
            with self.view.lock:
                mode = self.view.mode
            if mode == "3d":
                self.draw_3d(self.session.scene_3d())
            else:
                self.draw_2d(self.session.scene_2d())
            self.draw_hud()
            pygame.display.flip()
            self.clock.tick(60)

        pygame.quit()

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.view.running = False
                self.running = False

            elif event.type == pygame.VIDEORESIZE:
                self.surface = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                with self.view.lock:
                    self.view.viewport = (event.w, event.h)
                self.session.builder.set_viewport(event.w, event.h)

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_SPACE:
                    self.session.controller.toggle_pause()
                elif event.key == pygame.K_v:
                    self.view.toggle_mode()
                elif event.key == pygame.K_t:
                    self.view.toggle_trails()

    def _center(self) -> Tuple[int, int]:
        w, h = self.surface.get_size()
        return (w // 2, h // 2)

    def draw_2d(self, scene: SceneModel):
        surf = self.surface
        surf.fill(BACKGROUND_COLOR)
        cx, cy = self._center()
        with self.view.lock:
            show_trails = self.view.show_trails
            show_labels = self.view.show_labels

        if show_trails:
            for name, trail in scene.trails.items():
                if len(trail) < 2:
                    continue
                pts = []
                for p in trail:
                    sp = _safe_point((cx + p[0], cy + p[1]))
                    if sp:
                        pts.append(sp)
                if len(pts) > 1:
                    try:
                        pygame.draw.aalines(surf, TRAIL_COLOR, False, pts)
                    except (pygame.error, ValueError):
                        pass

        for b in scene.bodies:
            sp = _safe_point((cx + b.position[0], cy + b.position[1]))
            if sp is None:
                continue
            vis_r = max(1, min(int(round(b.radius)), 60))
            try:
                gfxdraw.filled_circle(surf, sp[0], sp[1], vis_r, b.color)
                gfxdraw.aacircle(surf, sp[0], sp[1], vis_r, b.color)
            except (pygame.error, OverflowError):
                pass
            if show_labels:
                draw_text(surf, b.name, sp[0] + vis_r + 4, sp[1] - vis_r - 10, LABEL_COLOR)

    def draw_3d(self, scene: SceneModel):
        surf = self.surface
        surf.fill(BACKGROUND_COLOR)
        center = self._center()
        with self.view.lock:
            show_trails = self.view.show_trails
            show_labels = self.view.show_labels

        if show_trails:
            for name, trail in scene.trails.items():
                pts = []
                for p in trail:
                    proj = project_3d(p, center)
                    sp = _safe_point(proj) if proj else None
                    if sp:
                        pts.append(sp)
                if len(pts) > 1:
                    try:
                        pygame.draw.aalines(surf, TRAIL_COLOR, False, pts)
                    except (pygame.error, ValueError):
                        pass

        # Painter's order: farthest first
        projected = []
        for b in scene.bodies:
            proj = project_3d(b.position, center)
            if proj is None:
                continue
            projected.append((proj[2], proj, b))
        projected.sort(key=lambda item: item[0], reverse=True)

        for depth, proj, b in projected:
            sp = _safe_point(proj)
            if sp is None:
                continue
            vis_r = max(1, min(int(round(b.radius * FOCAL_LENGTH_PX / depth)), 120))
            try:
                gfxdraw.filled_circle(surf, sp[0], sp[1], vis_r, b.color)
                gfxdraw.aacircle(surf, sp[0], sp[1], vis_r, b.color)
            except (pygame.error, OverflowError):
                pass
            if show_labels:
                draw_text(surf, b.name, sp[0] + vis_r + 4, sp[1] - vis_r - 10, LABEL_COLOR)

    def draw_hud(self):
        state = self.session.controller.state()
        draw_text(self.surface, "Space: Start/Stop | V: 2D/3D | T: Trails", 10, 10, HUD_COLOR)
        status = "Paused" if state.paused else "Running"
        phase = state.phase.value
        draw_text(self.surface,
                  f"{format_date(state.current_instant)}  step {state.step_seconds / 86400:g} d  [{status}, {phase}]",
                  10, 30, HUD_COLOR)
        if self.session.last_error:
            draw_text(self.surface, f"Last tick failed: {self.session.last_error}", 10, 50, (255, 120, 120))

# ============================================================
# Dear PyGui UI
# ============================================================

class UI:
    """
    Dear PyGui interface: start/stop, step selector, date and server readouts,
    view switches and per-body cards.
    """
    def __init__(self, session: ViewerSession, view: ViewState, step_unit: str, step_amount: int):
        self.session = session
        self.view = view

        self.status_msg_id = None
        self.server_msg_id = None
        self.date_id = None
        self.play_button_id = None
        self.step_amount_id = None
        self.step_unit_id = None
        self.cards_id = None

        self._unit_by_label = {label: unit for unit, label in STEP_UNIT_LABELS.items()}
        self._build_ui(step_unit, step_amount)

        dpg.set_frame_callback(1, self._post_setup)
        self._schedule_sync()

    def _post_setup(self):
        ok, message = self.session.check_server()
        dpg.set_value(self.server_msg_id, f"Server: {message}")
        dpg.configure_item(self.server_msg_id, color=(180, 220, 180) if ok else (255, 120, 120))

    def _schedule_sync(self):
        """Reschedule the periodic sync callback using frame callbacks (approx ~10Hz)."""
        current = dpg.get_frame_count()
        dpg.set_frame_callback(current + 6, self._sync_ui_with_session)

    def _build_ui(self, step_unit: str, step_amount: int):
        dpg.create_context()
        dpg.create_viewport(title='Orrery Viewer - Controls', width=520, height=640)

        with dpg.window(label="Controls", width=500, height=620, pos=(10, 10), tag="main_window"):
            self.server_msg_id = dpg.add_text("Server: waiting...")
            dpg.add_separator()

            with dpg.group(horizontal=True):
                self.play_button_id = dpg.add_button(label="Start", width=100, callback=self._toggle_play)
                self.date_id = dpg.add_text("--/--/----")
            with dpg.group(horizontal=True):
                dpg.add_text("Time step:")
                self.step_amount_id = dpg.add_input_int(default_value=step_amount, min_value=1, min_clamped=True,
                                                        width=100, callback=self._on_step_changed)
                self.step_unit_id = dpg.add_combo(list(STEP_UNIT_LABELS.values()),
                                                  default_value=STEP_UNIT_LABELS[step_unit], width=140,
                                                  callback=self._on_step_changed)
            dpg.add_separator()

            dpg.add_text("View")
            with dpg.group(horizontal=True):
                dpg.add_button(label="2D / 3D", callback=lambda: self._set_status(f"View: {self.view.toggle_mode().upper()}"))
                dpg.add_checkbox(label="Trails", default_value=True, callback=self._toggle_trails)
                dpg.add_checkbox(label="Labels", default_value=True, callback=self._toggle_labels)
                dpg.add_button(label="Reset", callback=self._reset)
            self.status_msg_id = dpg.add_text("")
            dpg.add_separator()

            dpg.add_text("Bodies")
            self.cards_id = dpg.add_child_window(width=480, height=380)

        dpg.setup_dearpygui()
        dpg.show_viewport()
        dpg.set_primary_window("main_window", True)

    # -----------------------
    # UI Callbacks
    # -----------------------

    def _set_status(self, msg: str, color=(180, 220, 180)):
        dpg.set_value(self.status_msg_id, msg)
        dpg.configure_item(self.status_msg_id, color=color)

    def _set_error(self, msg: str):
        self._set_status(msg, color=(255, 120, 120))

    def _toggle_play(self):
        paused = self.session.controller.toggle_pause()
        self._set_status("Simulation paused." if paused else "Simulation running.")

    def _on_step_changed(self, sender=None, app_data=None, user_data=None):
        amount = dpg.get_value(self.step_amount_id)
        unit = self._unit_by_label.get(dpg.get_value(self.step_unit_id), "day")
        try:
            seconds = step_seconds(unit, amount)
        except ValueError as exc:
            self._set_error(str(exc))
            return
        self.session.controller.set_step(seconds)
        self._set_status(f"Step: {amount} {STEP_UNIT_LABELS[unit]} ({seconds:.0f} s)")

    def _toggle_trails(self, sender, value, user_data=None):
        with self.view.lock:
            self.view.show_trails = bool(value)
        self._set_status(f"Trails {'ON' if value else 'OFF'}.")

    def _toggle_labels(self, sender, value, user_data=None):
        with self.view.lock:
            self.view.show_labels = bool(value)

    def _reset(self):
        self.session.reset()
        self._set_status("Session reset.")

    def _refresh_cards(self):
        dpg.delete_item(self.cards_id, children_only=True)
        for card in self.session.builder.cards():
            dpg.add_text(card["name"], parent=self.cards_id, color=(255, 220, 120))
            dpg.add_text(f"  Mass: {card['mass']}", parent=self.cards_id)
            dpg.add_text(f"  Radius: {card['radius']}", parent=self.cards_id)
            dpg.add_text(f"  Position: {card['position']}", parent=self.cards_id)
            dpg.add_text(f"  Velocity: {card['velocity']}", parent=self.cards_id)

    def _sync_ui_with_session(self):
        """Periodic UI update: date, play button label and body cards."""
        state = self.session.controller.state()
        dpg.set_value(self.date_id, format_date(state.current_instant))
        dpg.configure_item(self.play_button_id, label="Start" if state.paused else "Stop")
        self._refresh_cards()
        self._schedule_sync()

# ============================================================
# Application Entry
# ============================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Orrery Viewer")
    parser.add_argument("--config", default=None, help="Path to a viewer JSON configuration")
    parser.add_argument("--api-url", default=None, help="Simulation service base URL")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config, overrides={"api_url": args.api_url, "log_level": args.log_level})
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    session = ViewerSession.from_config(config)
    view = ViewState(config.viewport)

    worker = FetchWorker(session, config.tick_interval_s)
    renderer = PygameRenderer(session, view)
    worker.start()
    renderer.start()

    ui = UI(session, view, config.step_unit, config.step_amount)

    # Keyboard shortcut in UI window to toggle play/pause (Space)
    with dpg.handler_registry():
        def key_down(sender, app_data):
            if app_data == dpg.mvKey_Spacebar:
                ui._toggle_play()
        dpg.add_key_press_handler(callback=key_down)

    log.info("viewer started against %s", config.api_url)
    try:
        dpg.start_dearpygui()
    finally:
        view.running = False
        renderer.running = False
        worker.stop()
        renderer.join(timeout=2.0)
        session.client.close()
        dpg.destroy_context()
    return 0

if __name__ == "__main__":
    sys.exit(main())
