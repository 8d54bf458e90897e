"""Tests for Scene: reset, resize and click-to-plant."""

import pytest

from frangipani_engine import Scene, SceneConfig, Spark

W, H = 800, 600


@pytest.fixture
def scene(rng, clock):
    return Scene(W, H, clock=clock, rng=rng)


class TestReset:
    def test_default_counts(self, scene):
        assert len(scene.streaks) == 300
        assert len(scene.roots) == 30
        assert scene.sparks == []

    def test_roots_fan_up_from_bottom_centre(self, scene):
        for root in scene.roots:
            assert (root.x, root.y) == (W / 2, H)
            assert -160.0 <= root.angle <= -20.0
            assert 0.4 * H <= root.max_length <= 0.7 * H
            assert root.width == 8.0
            assert root.depth == 0
            assert root.length == 0.0
            assert root.children == []

    def test_reset_discards_everything(self, scene, rng):
        scene.plant(10, 10)
        scene.emit(Spark(0, 0, '#ffffff', rng=rng))
        old_roots = list(scene.roots)
        scene.reset()
        assert len(scene.roots) == 30
        assert scene.sparks == []
        assert not set(map(id, scene.roots)) & set(map(id, old_roots))

    def test_custom_counts(self, rng):
        scene = Scene(100, 100, config=SceneConfig(streaks=4, roots=2), rng=rng)
        assert len(scene.streaks) == 4
        assert len(scene.roots) == 2
        assert scene.node_count() == 2


class TestResize:
    def test_resize_replants_for_new_size(self, scene):
        scene.resize(320, 200)
        assert (scene.width, scene.height) == (320, 200)
        assert len(scene.roots) == 30
        for root in scene.roots:
            assert (root.x, root.y) == (160, 200)
            assert 80 <= root.max_length <= 140
        for streak in scene.streaks:
            assert 0 <= streak.x < 320
            assert streak.height == 200


class TestPlant:
    def test_click_adds_one_root(self, scene):
        node = scene.plant(100, 100)
        assert len(scene.roots) == 31
        assert scene.roots[-1] is node
        assert (node.x, node.y) == (100, 100)
        assert node.angle == -90
        assert node.max_length == 50
        assert node.width == 4
        assert node.depth == 0

    def test_clock_is_injected(self, scene, clock):
        clock.advance(1234.0)
        assert scene.now() == 1234.0
