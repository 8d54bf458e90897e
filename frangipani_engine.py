"""
frangipani_engine.py — Shared systems for the frangipani garden

Contains:
- Utils: rand_range / clamp / monotonic_ms
- Configs: StreakConfig / SparkConfig / GrowthConfig / BloomConfig / SceneConfig
- Streak: falling rain/star line, recycled above the top edge once it drops out
- Spark: short-lived glowing dot shed by open blooms
- draw_frangipani: stateless five-petal bloom (rotation comes from the clock)
- GrowthNode: self-extending stem segment (grow -> continue or flower)
- Scene: streaks, root nodes and sparks plus the surface size
- Engine: per-frame clear / update / draw cycle that reschedules itself

Nothing here touches pygame directly; all painting goes through a canvas
from frangipani_canvas (or anything with the same methods).
"""
import math
import random
import time
from dataclasses import dataclass

TAU = 2 * math.pi
PETAL_REACH = 1.12  # farthest petal point, as a multiple of bloom size


# ---------- utils ----------
def rand_range(lo, hi, rng=random):
    return lo + rng.random() * (hi - lo)


def clamp(x, lo, hi):
    return lo if x < lo else hi if x > hi else x


def monotonic_ms():
    return time.monotonic() * 1000.0


# ---------- configs ----------
@dataclass(frozen=True)
class StreakConfig:
    size: tuple = (0.5, 2.0)
    length: tuple = (8.0, 20.0)
    fall_speed: tuple = (2.0, 8.0)
    drift: float = 0.25              # horizontal speed is uniform in [-drift, drift]
    opacity: tuple = (0.2, 1.0)
    respawn_top: float = -10.0       # recycled streaks land in (respawn_top - respawn_band, respawn_top]
    respawn_band: float = 100.0
    side_margin: float = 50.0
    slant: float = 0.3
    color: tuple = (200, 220, 255)


@dataclass(frozen=True)
class SparkConfig:
    size: tuple = (1.0, 4.0)
    speed: float = 1.0               # per-axis velocity uniform in [-speed, speed]
    life: int = 60
    shrink: float = 0.95
    glow: float = 10.0


@dataclass(frozen=True)
class GrowthConfig:
    ease: float = 0.05
    min_step: float = 0.1
    wave: float = 10.0               # child angle offset uniform in [-wave, wave] degrees
    length_decay: float = 0.95
    width_decay: float = 0.85
    sway_amount: float = 2.0
    sway_reference_depth: int = 10   # amplitude scales with (10 - depth): blooming tips sway most
    sway_rate: float = 0.001         # radians of phase per millisecond
    curve_lift: float = 0.5
    stem_glow: float = 5.0
    stem_glow_color: str = '#556b2f'
    leaf_threshold: float = 0.8
    leaf_count: int = 3
    leaf_spread: float = 120.0
    leaf_length: tuple = (20.0, 30.0)
    leaf_color: str = '#228B22'
    vein_color: str = '#32CD32'
    vein_width: float = 1.0


@dataclass(frozen=True)
class BloomConfig:
    petals: int = 5
    palette: tuple = ('#ffffff', '#ff69b4', '#ff0000', '#00ffff')
    white: str = '#ffffff'
    white_stops: tuple = ((0.0, '#ffd700'), (0.4, '#ffffff'), (1.0, '#f0f0f0'))
    heart: str = '#ffcc00'
    spin: float = 0.0005             # radians per millisecond
    glow: float = 15.0
    petal_glow: float = 5.0
    ease: float = 0.03
    size_base: float = 35.0
    size_per_depth: float = 6.0
    size_reference_depth: int = 10
    spark_chance: float = 0.05


@dataclass(frozen=True)
class SceneConfig:
    streaks: int = 300
    roots: int = 30
    root_angle: tuple = (-160.0, -20.0)
    root_height: tuple = (0.4, 0.7)  # fraction of surface height
    root_width: float = 8.0
    root_depth: int = 0
    stem_color: str = '#6b8e23'
    plant_angle: float = -90.0
    plant_length: float = 50.0
    plant_width: float = 4.0
    plant_depth: int = 0
    background: tuple = (0, 0, 0)


DEFAULT_STREAK = StreakConfig()
DEFAULT_SPARK = SparkConfig()
DEFAULT_GROWTH = GrowthConfig()
DEFAULT_BLOOM = BloomConfig()
DEFAULT_SCENE = SceneConfig()


# ---------- streaks ----------
class Streak:
    """Falling rain/star line. Never destroyed, only recycled in place."""

    def __init__(self, width, height, config=DEFAULT_STREAK, rng=random):
        self.width = width
        self.height = height
        self.config = config
        self.rng = rng
        self.x = rng.random() * width
        self.y = rng.random() * height
        self.size = rand_range(*config.size, rng=rng)
        self.speed_x = rand_range(-config.drift, config.drift, rng=rng)
        self._roll()

    def _roll(self):
        cfg, rng = self.config, self.rng
        self.length = rand_range(*cfg.length, rng=rng)
        self.speed_y = rand_range(*cfg.fall_speed, rng=rng)
        self.opacity = rand_range(*cfg.opacity, rng=rng)

    def update(self):
        """Advance one frame; returns True when the streak was recycled."""
        cfg = self.config
        self.x += self.speed_x
        self.y += self.speed_y
        recycled = False
        if self.y > self.height + self.length:
            self.y = cfg.respawn_top - self.rng.random() * cfg.respawn_band
            self.x = self.rng.random() * self.width
            self._roll()
            recycled = True
        if self.x < -cfg.side_margin:
            self.x = self.width + cfg.side_margin
        elif self.x > self.width + cfg.side_margin:
            self.x = -cfg.side_margin
        return recycled

    def draw(self, canvas):
        canvas.save()
        canvas.stroke_style = self.config.color
        canvas.global_alpha = self.opacity
        canvas.line_width = self.size
        canvas.begin_path()
        canvas.move_to(self.x, self.y)
        canvas.line_to(self.x - self.speed_x * self.length * self.config.slant, self.y - self.length)
        canvas.stroke()
        canvas.restore()


# ---------- sparks ----------
class Spark:
    def __init__(self, x, y, color, config=DEFAULT_SPARK, rng=random):
        self.x = x
        self.y = y
        self.color = color
        self.config = config
        self.size = rand_range(*config.size, rng=rng)
        self.speed_x = rand_range(-config.speed, config.speed, rng=rng)
        self.speed_y = rand_range(-config.speed, config.speed, rng=rng)
        self.life = config.life
        self.opacity = 1.0

    @property
    def expired(self):
        return self.life <= 0

    def update(self):
        self.x += self.speed_x
        self.y += self.speed_y
        self.life -= 1
        self.opacity = self.life / self.config.life
        self.size *= self.config.shrink

    def draw(self, canvas):
        canvas.save()
        canvas.global_alpha = clamp(self.opacity, 0.0, 1.0)
        canvas.fill_style = self.color
        canvas.shadow_blur = self.config.glow
        canvas.shadow_color = self.color
        canvas.begin_path()
        canvas.arc(self.x, self.y, self.size, 0, TAU)
        canvas.fill()
        canvas.restore()


# ---------- blooms ----------
def petal_stops(color, config=DEFAULT_BLOOM):
    """Gradient stops for one petal: gold heart fading to the bloom colour."""
    if color.lower() == config.white:
        return list(config.white_stops)
    return [(0.0, config.heart), (0.5, color), (1.0, color)]


def draw_frangipani(canvas, x, y, size, color, now_ms, config=DEFAULT_BLOOM):
    """Five overlapping petals around (x, y), spun by wall-clock time alone.

    The size is snapped to whole pixels so a bloom is one cached sprite per
    (colour, size); between frames only its spin changes.
    """
    size = round(size)
    if size <= 0:
        return
    canvas.save()
    canvas.translate(x, y)
    canvas.shadow_blur = config.glow
    canvas.shadow_color = color
    canvas.rotate(now_ms * config.spin)
    reach = size * PETAL_REACH + config.petal_glow + 2
    canvas.draw_sprite(('frangipani', color, size, config), reach,
                       lambda c: _draw_petals(c, size, color, config))
    canvas.restore()


def _draw_petals(canvas, size, color, config):
    step = TAU / config.petals
    for i in range(config.petals):
        canvas.save()
        canvas.rotate(i * step)
        gradient = canvas.create_radial_gradient(0, 0, size * 0.1, size * 0.5, -size * 0.5, size)
        for offset, stop in petal_stops(color, config):
            gradient.add_color_stop(offset, stop)
        canvas.fill_style = gradient
        canvas.shadow_blur = config.petal_glow

        # outer edge sweeps out, inner edge tucks back under the next petal
        canvas.begin_path()
        canvas.move_to(0, 0)
        canvas.quadratic_curve_to(size * 0.5, -size * 0.2, size, -size * 0.5)
        canvas.quadratic_curve_to(size * 0.8, -size * 0.8, 0, 0)
        canvas.fill()

        canvas.begin_path()
        canvas.ellipse(size / 2, 0, size / 2, size / 4, -0.2, 0, TAU)
        canvas.fill()
        canvas.restore()


# ---------- growth ----------
class GrowthNode:
    """
    One stem segment. Grows with eased steps toward max_length; when it gets
    there it either sprouts exactly one continuation (depth > 0) or opens a
    bloom (depth == 0). Children are owned and only ever appended.

    Per frame the owner calls update(), then layout(now_ms) to place every
    tip top-down (sway included), then draw(canvas, now_ms, emit).
    """

    def __init__(self, x, y, angle, length, width, depth, color,
                 growth=DEFAULT_GROWTH, bloom=DEFAULT_BLOOM, spark=DEFAULT_SPARK, rng=random):
        self.x = x
        self.y = y
        self.angle = angle
        self.length = 0.0
        self.max_length = length
        self.width = width
        self.depth = depth
        self.color = color
        self.growth = growth
        self.bloom = bloom
        self.spark = spark
        self.rng = rng
        self.finished = False
        self.children = []
        self.has_flower = False
        self.flower_size = 0.0
        self.max_flower_size = (bloom.size_reference_depth - depth) * bloom.size_per_depth + bloom.size_base
        self.flower_color = rng.choice(bloom.palette)
        self.end_x = x
        self.end_y = y

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    # ---------- simulation ----------
    def update(self):
        cfg = self.growth
        if self.length < self.max_length:
            step = max((self.max_length - self.length) * cfg.ease, cfg.min_step)
            self.length = min(self.length + step, self.max_length)
        if self.length >= self.max_length and not self.finished:
            self.finished = True
            if self.depth > 0:
                self._sprout()
            else:
                self.has_flower = True

        if self.has_flower and self.flower_size < self.max_flower_size:
            self.flower_size += (self.max_flower_size - self.flower_size) * self.bloom.ease

        for child in self.children:
            child.update()

    def _sprout(self):
        cfg = self.growth
        rad = math.radians(self.angle)
        self.children.append(GrowthNode(
            self.x + math.cos(rad) * self.max_length,
            self.y + math.sin(rad) * self.max_length,
            self.angle + rand_range(-cfg.wave, cfg.wave, rng=self.rng),
            self.max_length * cfg.length_decay,
            self.width * cfg.width_decay,
            self.depth - 1,
            self.color,
            growth=self.growth, bloom=self.bloom, spark=self.spark, rng=self.rng,
        ))

    # ---------- layout ----------
    def sway(self, now_ms):
        """Draw-time angular offset in degrees; never stored."""
        cfg = self.growth
        amplitude = cfg.sway_amount * (cfg.sway_reference_depth - self.depth) * 0.1
        return math.sin(now_ms * cfg.sway_rate + self.depth) * amplitude

    def layout(self, now_ms):
        rad = math.radians(self.angle + self.sway(now_ms))
        self.end_x = self.x + math.cos(rad) * self.length
        self.end_y = self.y + math.sin(rad) * self.length
        for child in self.children:
            child.x, child.y = self.end_x, self.end_y
            child.layout(now_ms)

    # ---------- rendering ----------
    def draw(self, canvas, now_ms, emit=None):
        cfg = self.growth
        ex, ey = self.end_x, self.end_y

        canvas.save()
        canvas.stroke_style = self.color
        canvas.line_width = self.width
        canvas.line_cap = 'round'
        canvas.shadow_blur = cfg.stem_glow
        canvas.shadow_color = cfg.stem_glow_color
        canvas.begin_path()
        canvas.move_to(self.x, self.y)
        canvas.quadratic_curve_to(self.x, self.y - self.length * cfg.curve_lift, ex, ey)
        canvas.stroke()
        canvas.restore()

        if self.length > self.max_length * cfg.leaf_threshold:
            self._draw_leaves(canvas, ex, ey)

        for child in self.children:
            child.draw(canvas, now_ms, emit)

        if self.has_flower:
            draw_frangipani(canvas, ex, ey, self.flower_size, self.flower_color, now_ms, self.bloom)
            if emit is not None and self.rng.random() < self.bloom.spark_chance:
                emit(Spark(ex, ey, self.flower_color, self.spark, rng=self.rng))

    def _draw_leaves(self, canvas, ex, ey):
        cfg = self.growth
        for i in range(cfg.leaf_count):
            # re-rolled every frame, so leaves shimmer slightly
            leaf_len = rand_range(*cfg.leaf_length, rng=self.rng)
            canvas.save()
            canvas.translate(ex, ey)
            canvas.rotate(math.radians(self.angle + cfg.leaf_spread * i))
            canvas.fill_style = cfg.leaf_color
            canvas.begin_path()
            canvas.ellipse(leaf_len / 2, 0, leaf_len / 2, leaf_len / 6, 0, 0, TAU)
            canvas.fill()

            canvas.stroke_style = cfg.vein_color
            canvas.line_width = cfg.vein_width
            canvas.begin_path()
            canvas.move_to(0, 0)
            canvas.line_to(leaf_len, 0)
            canvas.stroke()
            canvas.restore()


# ---------- scene ----------
class Scene:
    """Everything alive in one generation of the garden."""

    def __init__(self, width, height, config=DEFAULT_SCENE, streak=DEFAULT_STREAK,
                 spark=DEFAULT_SPARK, growth=DEFAULT_GROWTH, bloom=DEFAULT_BLOOM,
                 clock=monotonic_ms, rng=random):
        self.width = width
        self.height = height
        self.config = config
        self.streak_config = streak
        self.spark_config = spark
        self.growth_config = growth
        self.bloom_config = bloom
        self.clock = clock
        self.rng = rng
        self.streaks = []
        self.roots = []
        self.sparks = []
        self.reset()

    def now(self):
        return self.clock()

    def _node(self, x, y, angle, length, width, depth):
        return GrowthNode(x, y, angle, length, width, depth, self.config.stem_color,
                          growth=self.growth_config, bloom=self.bloom_config,
                          spark=self.spark_config, rng=self.rng)

    def reset(self):
        cfg, rng = self.config, self.rng
        self.streaks = [Streak(self.width, self.height, self.streak_config, rng=rng)
                        for _ in range(cfg.streaks)]
        self.sparks = []
        self.roots = []
        for _ in range(cfg.roots):
            angle = rand_range(*cfg.root_angle, rng=rng)
            length = self.height * rand_range(*cfg.root_height, rng=rng)
            self.roots.append(self._node(self.width / 2, self.height, angle, length,
                                         cfg.root_width, cfg.root_depth))

    def resize(self, width, height):
        self.width = width
        self.height = height
        self.reset()

    def plant(self, x, y):
        cfg = self.config
        node = self._node(x, y, cfg.plant_angle, cfg.plant_length, cfg.plant_width, cfg.plant_depth)
        self.roots.append(node)
        return node

    def emit(self, spark):
        self.sparks.append(spark)

    def node_count(self):
        return sum(1 for root in self.roots for _ in root.walk())


# ---------- engine ----------
class Engine:
    """
    One frame: clear, streaks, growth (update -> layout -> draw per root),
    then sparks in reverse so expired ones can be dropped in place.
    animate() runs a frame and asks the scheduler for the next one; errors
    from the canvas are not caught and end the loop.
    """

    def __init__(self, scene, canvas, scheduler=None):
        self.scene = scene
        self.canvas = canvas
        self.scheduler = scheduler
        self.frames = 0

    def frame(self):
        scene, canvas = self.scene, self.canvas
        canvas.clear(scene.config.background)
        now = scene.now()

        for streak in scene.streaks:
            streak.update()
            streak.draw(canvas)

        for root in scene.roots:
            root.update()
            root.layout(now)
            root.draw(canvas, now, scene.emit)

        sparks = scene.sparks
        for i in range(len(sparks) - 1, -1, -1):
            spark = sparks[i]
            spark.update()
            spark.draw(canvas)
            if spark.expired:
                del sparks[i]

        self.frames += 1

    def animate(self):
        self.frame()
        self.scheduler.request_frame(self.animate)

    def start(self):
        self.scheduler.request_frame(self.animate)
