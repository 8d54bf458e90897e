#!/usr/bin/env python3
"""
frangipani_garden — a swaying bouquet of frangipani under falling light.

Thirty stems fan out from the bottom centre, ease up to height, open into
slowly spinning five-petal blooms and shed sparks. Rain/star streaks fall
behind them. Resizing the window starts a new garden.

Keys / mouse (while running):
  click  — Plant a new stem where you clicked
  s      — Save screenshot to ./screenshots
  Esc    — Quit

Offline mode renders frames to PNG without opening a window:
  python3 frangipani_garden.py --offline 600 --out frames_out
  FRANGIPANI_OFFLINE=1 python3 frangipani_garden.py

Requires: pygame, numpy
"""
import argparse
import os
import sys
import time

import pygame

from frangipani_canvas import Canvas
from frangipani_engine import Engine, Scene

# ===== Config =====
FPS = 60
OFFLINE_FRAMES = 600
OFFLINE_SIZE = (1920, 1080)
FRAMES_DIR = "frames_out"
SCREENSHOT_DIR = "screenshots"
PROGRESS_EVERY = 300


def parse_size(text):
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}")
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {text!r}")
    return w, h


def positive_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return value


def build_parser():
    ap = argparse.ArgumentParser(description="Frangipani garden: growing, swaying, flowering stems")
    ap.add_argument("--size", type=parse_size, default=None,
                    help="Window size WxH (default: fullscreen; offline: 1920x1080)")
    ap.add_argument("--fps", type=positive_int, default=FPS, help="Frame cap")
    ap.add_argument("--offline", type=positive_int, default=None, metavar="N",
                    help="Render N frames to PNG without a window")
    ap.add_argument("--out", default=FRAMES_DIR, help="Offline frame folder")
    ap.add_argument("--screenshots", default=SCREENSHOT_DIR, help="Screenshot folder")
    return ap


def parse_args(argv=None, environ=os.environ):
    args = build_parser().parse_args(argv)
    flag = environ.get("FRANGIPANI_OFFLINE", "")
    if flag not in ("", "0", "1"):
        print(f"[warn] FRANGIPANI_OFFLINE={flag!r} not understood (use 1 or 0); ignoring it")
    elif args.offline is None and flag == "1":
        args.offline = OFFLINE_FRAMES
    return args


def fit_window(size, desktops):
    """Requested window size, or None (fullscreen) when no desktop can hold it."""
    if size is None:
        return None
    if desktops and not any(size[0] <= w and size[1] <= h for w, h in desktops):
        print(f"[warn] --size {size[0]}x{size[1]} is larger than the desktop; using fullscreen")
        return None
    return size


# ===== Schedulers =====
class PygameScheduler:
    """Runs the pending frame callback once per display refresh."""

    def __init__(self, fps=FPS, clock=None):
        self.fps = fps
        self.clock = clock or pygame.time.Clock()
        self.pending = None
        self.running = False
        self.on_event = None
        self.on_present = None

    def request_frame(self, callback):
        self.pending = callback

    def stop(self):
        self.running = False

    def run(self):
        self.running = True
        while self.running:
            self.clock.tick(self.fps)
            for event in pygame.event.get():
                if self.on_event is not None:
                    self.on_event(event)
            if not self.running:
                break
            callback, self.pending = self.pending, None
            if callback is None:
                break
            callback()
            if self.on_present is not None:
                self.on_present()


class OfflineScheduler:
    """Runs a fixed number of frames back to back on a synthetic clock."""

    def __init__(self, frames, fps=FPS):
        self.frames = frames
        self.fps = fps
        self.index = 0
        self.pending = None
        self.on_present = None

    def now_ms(self):
        return self.index * 1000.0 / self.fps

    def request_frame(self, callback):
        self.pending = callback

    def stop(self):
        self.frames = self.index

    def run(self):
        while self.index < self.frames:
            callback, self.pending = self.pending, None
            if callback is None:
                break
            callback()
            if self.on_present is not None:
                self.on_present(self.index)
            self.index += 1


# ===== App =====
class GardenApp:
    """Glue between pygame (surface, events) and the engine."""

    def __init__(self, surface, scheduler, clock, screenshot_dir=SCREENSHOT_DIR):
        self.surface = surface
        self.scheduler = scheduler
        self.screenshot_dir = screenshot_dir
        w, h = surface.get_size()
        self.canvas = Canvas(surface)
        self.scene = Scene(w, h, clock=clock)
        self.engine = Engine(self.scene, self.canvas, scheduler)
        self.log_garden("garden")

    def log_garden(self, what):
        scene = self.scene
        print(f"[info] {what} {scene.width}x{scene.height}: {len(scene.streaks)} streaks, {len(scene.roots)} stems")

    def resize(self, surface):
        self.surface = surface
        self.canvas.set_surface(surface)
        w, h = surface.get_size()
        self.scene.resize(w, h)
        self.log_garden("replanted")

    def screenshot(self):
        os.makedirs(self.screenshot_dir, exist_ok=True)
        path = os.path.join(self.screenshot_dir, time.strftime("frangipani_%Y%m%d_%H%M%S.png"))
        pygame.image.save(self.surface, path)
        print("[info] saved", path)
        return path

    def handle_event(self, event):
        if event.type == pygame.QUIT:
            self.scheduler.stop()
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self.scheduler.stop()
            elif event.key == pygame.K_s:
                self.screenshot()
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self.scene.plant(*event.pos)
        elif event.type in (pygame.VIDEORESIZE, pygame.WINDOWSIZECHANGED):
            self.window_resized(event)

    def window_resized(self, event):
        surface = pygame.display.get_surface()
        if surface is None:
            size = event.size if event.type == pygame.VIDEORESIZE else (event.x, event.y)
            surface = pygame.Surface(size)
        if surface.get_size() == (self.scene.width, self.scene.height):
            # one drag sends both VIDEORESIZE and WINDOWSIZECHANGED
            self.surface = surface
            self.canvas.set_surface(surface)
            return
        self.resize(surface)


def run_live(args):
    size = fit_window(args.size, pygame.display.get_desktop_sizes())
    if size:
        screen = pygame.display.set_mode(size, pygame.RESIZABLE)
    else:
        screen = pygame.display.set_mode((0, 0), pygame.FULLSCREEN)
    print(f"[info] Live: {'window' if size else 'fullscreen'} @ {args.fps} fps")
    pygame.display.set_caption("Frangipani Garden")
    scheduler = PygameScheduler(fps=args.fps)
    app = GardenApp(screen, scheduler, clock=pygame.time.get_ticks, screenshot_dir=args.screenshots)
    scheduler.on_event = app.handle_event
    scheduler.on_present = pygame.display.flip
    app.engine.start()
    scheduler.run()
    return app


def run_offline(args):
    size = args.size or OFFLINE_SIZE
    pygame.display.set_mode(size)
    surface = pygame.Surface(size)
    scheduler = OfflineScheduler(args.offline, fps=args.fps)
    app = GardenApp(surface, scheduler, clock=scheduler.now_ms, screenshot_dir=args.screenshots)
    os.makedirs(args.out, exist_ok=True)
    print(f"[info] Offline: frames={args.offline} @ {args.fps} fps, size={size[0]}x{size[1]} -> {args.out}/")

    def save_frame(index):
        pygame.image.save(surface, os.path.join(args.out, f"frame_{index:06d}.png"))
        if index % PROGRESS_EVERY == 0:
            print(f"[info] wrote frame {index}/{args.offline}")

    scheduler.on_present = save_frame
    app.engine.start()
    scheduler.run()
    return app


def main(argv=None):
    args = parse_args(argv)
    if args.offline:
        os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    pygame.init()
    try:
        if args.offline:
            run_offline(args)
        else:
            run_live(args)
    except pygame.error as exc:
        print(f"[error] {exc}")
        return 1
    finally:
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())
