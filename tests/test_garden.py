"""Tests for the program shell: CLI, schedulers, event handling, offline run."""

import argparse
from pathlib import Path

import pygame
import pytest

import frangipani_garden as garden


class InstantClock:
    def __init__(self):
        self.ticks = 0

    def tick(self, fps):
        self.ticks += 1
        return 0


@pytest.fixture
def app(pygame_ready, scheduler, clock, tmp_path):
    surface = pygame.Surface((200, 100))
    return garden.GardenApp(surface, scheduler, clock, screenshot_dir=str(tmp_path / "shots"))


# ══════════════════════════════════════════════════════════════════════════════
# COMMAND LINE
# ══════════════════════════════════════════════════════════════════════════════

class TestCommandLine:
    def test_defaults(self):
        args = garden.parse_args([], environ={})
        assert args.size is None
        assert args.fps == 60
        assert args.offline is None
        assert args.out == "frames_out"
        assert args.screenshots == "screenshots"

    def test_size(self):
        assert garden.parse_size("1280x720") == (1280, 720)
        assert garden.parse_size("64X48") == (64, 48)

    @pytest.mark.parametrize("text", ["1280", "ax720", "0x10", "10x-3"])
    def test_bad_size(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            garden.parse_size(text)

    def test_bad_size_exits_with_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            garden.parse_args(["--size", "big"], environ={})
        assert exc.value.code == 2

    @pytest.mark.parametrize("flag", ["--fps", "--offline"])
    def test_non_positive_counts_rejected(self, flag):
        with pytest.raises(SystemExit):
            garden.parse_args([flag, "0"], environ={})

    def test_offline_from_environment(self):
        args = garden.parse_args([], environ={"FRANGIPANI_OFFLINE": "1"})
        assert args.offline == garden.OFFLINE_FRAMES

    def test_explicit_offline_wins(self):
        args = garden.parse_args(["--offline", "5"], environ={"FRANGIPANI_OFFLINE": "1"})
        assert args.offline == 5

    def test_unknown_offline_flag_warns_and_runs_live(self, capsys):
        args = garden.parse_args([], environ={"FRANGIPANI_OFFLINE": "yes"})
        assert args.offline is None
        assert "[warn] FRANGIPANI_OFFLINE='yes' not understood" in capsys.readouterr().out

    def test_window_that_fits_is_kept(self, capsys):
        assert garden.fit_window((1280, 720), [(1920, 1080)]) == (1280, 720)
        assert garden.fit_window(None, [(1920, 1080)]) is None
        assert capsys.readouterr().out == ""

    def test_oversized_window_falls_back_to_fullscreen(self, capsys):
        assert garden.fit_window((4000, 3000), [(1920, 1080), (2560, 1440)]) is None
        assert "[warn] --size 4000x3000 is larger than the desktop" in capsys.readouterr().out


# ══════════════════════════════════════════════════════════════════════════════
# SCHEDULERS
# ══════════════════════════════════════════════════════════════════════════════

class TestPygameScheduler:
    def test_runs_pending_callback_each_refresh(self, pygame_ready):
        sched = garden.PygameScheduler(fps=60, clock=InstantClock())
        presented = []
        calls = []

        def frame():
            calls.append(len(calls))
            if len(calls) < 3:
                sched.request_frame(frame)

        sched.on_present = lambda: presented.append(True)
        sched.request_frame(frame)
        sched.run()
        assert calls == [0, 1, 2]
        assert len(presented) == 3
        assert sched.clock.ticks == 4

    def test_quit_event_stops_before_frame(self, pygame_ready):
        pygame.display.set_mode((10, 10))
        sched = garden.PygameScheduler(fps=60, clock=InstantClock())
        calls = []
        sched.on_event = lambda event: sched.stop() if event.type == pygame.QUIT else None
        sched.request_frame(lambda: calls.append(1))
        pygame.event.post(pygame.event.Event(pygame.QUIT))
        sched.run()
        assert calls == []


class TestOfflineScheduler:
    def test_fixed_frame_count_and_clock(self):
        sched = garden.OfflineScheduler(3, fps=50)
        seen = []

        def frame():
            seen.append(sched.now_ms())
            sched.request_frame(frame)

        presented = []
        sched.on_present = presented.append
        sched.request_frame(frame)
        sched.run()
        assert seen == [0.0, 20.0, 40.0]
        assert presented == [0, 1, 2]

    def test_stop_ends_run(self):
        sched = garden.OfflineScheduler(100)

        def frame():
            sched.stop()
            sched.request_frame(frame)

        sched.request_frame(frame)
        sched.run()
        assert sched.index == 1


# ══════════════════════════════════════════════════════════════════════════════
# EVENTS
# ══════════════════════════════════════════════════════════════════════════════

class TestGardenApp:
    def test_builds_full_scene(self, app):
        assert (app.scene.width, app.scene.height) == (200, 100)
        assert len(app.scene.roots) == 30
        assert len(app.scene.streaks) == 300

    def test_left_click_plants(self, app):
        event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(100, 100))
        app.handle_event(event)
        assert len(app.scene.roots) == 31
        node = app.scene.roots[-1]
        assert (node.x, node.y) == (100, 100)
        assert node.angle == -90
        assert node.max_length == 50

    def test_other_buttons_ignored(self, app):
        app.handle_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=3, pos=(5, 5)))
        assert len(app.scene.roots) == 30

    def test_quit_and_escape_stop(self, app, scheduler):
        app.handle_event(pygame.event.Event(pygame.QUIT))
        assert scheduler.stopped
        scheduler.stopped = False
        app.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
        assert scheduler.stopped

    def test_screenshot_key(self, app, tmp_path):
        app.handle_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_s))
        shots = list((tmp_path / "shots").glob("frangipani_*.png"))
        assert len(shots) == 1

    def test_resize_replants(self, app):
        app.scene.plant(1, 1)
        app.resize(pygame.Surface((320, 240)))
        assert (app.scene.width, app.scene.height) == (320, 240)
        assert (app.canvas.width, app.canvas.height) == (320, 240)
        assert len(app.scene.roots) == 30
        assert all((r.x, r.y) == (160, 240) for r in app.scene.roots)

    def test_resize_logs_counts(self, app, capsys):
        app.resize(pygame.Surface((320, 240)))
        assert "[info] replanted 320x240: 300 streaks, 30 stems" in capsys.readouterr().out

    def test_window_size_change_replants(self, app):
        app.scene.plant(1, 1)
        app.handle_event(pygame.event.Event(pygame.WINDOWSIZECHANGED, x=300, y=200))
        assert (app.scene.width, app.scene.height) == (300, 200)
        assert len(app.scene.roots) == 30

    def test_videoresize_replants(self, app):
        app.scene.plant(1, 1)
        app.handle_event(pygame.event.Event(pygame.VIDEORESIZE, size=(300, 200), w=300, h=200))
        assert (app.scene.width, app.scene.height) == (300, 200)
        assert len(app.scene.roots) == 30

    def test_same_size_event_keeps_garden(self, pygame_ready, scheduler, clock):
        screen = pygame.display.set_mode((120, 80))
        app = garden.GardenApp(screen, scheduler, clock)
        app.scene.plant(1, 1)
        app.handle_event(pygame.event.Event(pygame.VIDEORESIZE, size=(120, 80), w=120, h=80))
        app.handle_event(pygame.event.Event(pygame.WINDOWSIZECHANGED, x=120, y=80))
        assert len(app.scene.roots) == 31

    def test_frames_paint_the_surface(self, app, scheduler):
        app.engine.start()
        for _ in range(3):
            scheduler.requests.pop(0)()
        assert app.engine.frames == 3
        assert pygame.transform.average_color(app.surface)[:3] != (0, 0, 0)


class TestMain:
    def test_offline_render(self, tmp_path, capsys):
        out = tmp_path / "frames"
        code = garden.main(["--offline", "2", "--size", "64x48", "--out", str(out)])
        assert code == 0
        assert sorted(p.name for p in Path(out).iterdir()) == ["frame_000000.png", "frame_000001.png"]
        logged = capsys.readouterr().out
        assert "[info] Offline: frames=2" in logged
        assert "[info] wrote frame 0/2" in logged
