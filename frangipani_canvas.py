"""
frangipani_canvas.py — 2D drawing surface for the frangipani garden

Contains:
- to_rgba: colour normaliser ('#rrggbb', names, 3/4-tuples)
- RadialGradient: two-circle radial gradient sampled with numpy
- BaseCanvas: paint state, save/restore stack, affine transforms (numpy 3x3),
  path building (move/line/quadratic curve/arc/ellipse)
- Canvas: rasterises paths onto a pygame Surface, caches sprites
- RecordingCanvas: same API, records fills/strokes instead of painting

Solid shapes are drawn with pygame.draw, gradients are painted per pixel
with numpy through a coverage mask. Glow is a few halo rings in the shadow
colour drawn underneath. draw_sprite() renders a shape once into an SRCALPHA
surface and then only rotozooms and blits it.
"""
import math

import numpy as np
import pygame

CURVE_SEGMENTS = 16
MIN_ARC_SEGMENTS = 12
MAX_ARC_SEGMENTS = 96
GLOW_RINGS = 3
SPRITE_CACHE_LIMIT = 128
TAU = 2 * math.pi

_STATE_KEYS = ('fill_style', 'stroke_style', 'line_width', 'line_cap',
               'global_alpha', 'shadow_blur', 'shadow_color')


def to_rgba(color):
    """'#rrggbb', pygame colour names, (r,g,b) or (r,g,b,a) -> (r,g,b,a) ints."""
    if isinstance(color, pygame.Color):
        c = color
    elif isinstance(color, str):
        c = pygame.Color(color)
    else:
        c = pygame.Color(*[int(round(v)) for v in color])
    return (c.r, c.g, c.b, c.a)


class RadialGradient:
    """Gradient between circle (x0, y0, r0) and circle (x1, y1, r1).

    Offsets outside [0, 1] are padded with the end colours; points where no
    interpolated circle passes are left transparent.
    """
    def __init__(self, x0, y0, r0, x1, y1, r1):
        if r0 < 0 or r1 < 0:
            raise ValueError("gradient radii must be non-negative")
        self.start = (float(x0), float(y0), float(r0))
        self.end = (float(x1), float(y1), float(r1))
        self.stops = []

    def add_color_stop(self, offset, color):
        if not 0.0 <= offset <= 1.0:
            raise ValueError(f"colour stop offset out of range: {offset}")
        self.stops.append((float(offset), to_rgba(color)))
        # stable sort keeps insertion order for equal offsets
        self.stops.sort(key=lambda s: s[0])

    def solve(self, u, v):
        """Gradient parameter t in [0, 1] and a validity mask for user-space points."""
        x0, y0, r0 = self.start
        x1, y1, r1 = self.end
        cdx, cdy, dr = x1 - x0, y1 - y0, r1 - r0
        px, py = u - x0, v - y0
        a = cdx * cdx + cdy * cdy - dr * dr
        b = px * cdx + py * cdy + r0 * dr
        c = px * px + py * py - r0 * r0
        with np.errstate(divide='ignore', invalid='ignore'):
            if abs(a) < 1e-9:
                w = np.where(b != 0, c / (2 * b), 0.0)
                valid = (b != 0) & (r0 + w * dr >= 0)
            else:
                disc = b * b - a * c
                sq = np.sqrt(np.maximum(disc, 0.0))
                w1 = (b + sq) / a
                w2 = (b - sq) / a
                ok1 = (disc >= 0) & (r0 + w1 * dr >= 0)
                ok2 = (disc >= 0) & (r0 + w2 * dr >= 0)
                w = np.where(ok1 & ok2, np.maximum(w1, w2),
                             np.where(ok1, w1, np.where(ok2, w2, 0.0)))
                valid = ok1 | ok2
        return np.clip(w, 0.0, 1.0), valid

    def sample(self, u, v):
        """RGBA (0..255 floats, shape u.shape + (4,)) and validity mask."""
        if not self.stops:
            raise ValueError("radial gradient has no colour stops")
        t, valid = self.solve(u, v)
        offsets = [s[0] for s in self.stops]
        out = np.empty(t.shape + (4,), dtype=np.float32)
        for ch in range(4):
            out[..., ch] = np.interp(t, offsets, [s[1][ch] for s in self.stops])
        return out, valid


class BaseCanvas:
    """Paint state, transform stack and path building shared by all canvases."""

    def __init__(self, width, height):
        self.width = width
        self.height = height
        self._stack = []
        self._matrix = np.identity(3)
        self._subpaths = []
        self.fill_style = (0, 0, 0)
        self.stroke_style = (0, 0, 0)
        self.line_width = 1.0
        self.line_cap = 'butt'
        self.global_alpha = 1.0
        self.shadow_blur = 0.0
        self.shadow_color = (0, 0, 0, 0)

    # ---------- state ----------
    def save(self):
        self._stack.append((self._matrix.copy(), {k: getattr(self, k) for k in _STATE_KEYS}))

    def restore(self):
        if not self._stack:
            raise IndexError("restore() without matching save()")
        self._matrix, state = self._stack.pop()
        for k, v in state.items():
            setattr(self, k, v)

    @property
    def depth(self):
        return len(self._stack)

    # ---------- transforms ----------
    def translate(self, tx, ty):
        self._matrix = self._matrix @ np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])

    def rotate(self, angle):
        c, s = math.cos(angle), math.sin(angle)
        self._matrix = self._matrix @ np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

    def reset_transform(self):
        self._matrix = np.identity(3)

    @property
    def scale(self):
        return math.sqrt(abs(np.linalg.det(self._matrix[:2, :2])))

    def to_device(self, x, y):
        m = self._matrix
        return (m[0, 0] * x + m[0, 1] * y + m[0, 2],
                m[1, 0] * x + m[1, 1] * y + m[1, 2])

    # ---------- paths ----------
    def begin_path(self):
        self._subpaths = []

    def move_to(self, x, y):
        self._subpaths.append([self.to_device(x, y)])

    def line_to(self, x, y):
        if not self._subpaths:
            self.move_to(x, y)
            return
        self._subpaths[-1].append(self.to_device(x, y))

    def quadratic_curve_to(self, cx, cy, x, y):
        if not self._subpaths:
            self.move_to(cx, cy)
        sub = self._subpaths[-1]
        p0 = np.array(sub[-1])
        p1 = np.array(self.to_device(cx, cy))
        p2 = np.array(self.to_device(x, y))
        # affine maps preserve Bezier curves, so flatten in device space
        t = np.linspace(0.0, 1.0, CURVE_SEGMENTS + 1)[1:, None]
        pts = (1 - t) ** 2 * p0 + 2 * (1 - t) * t * p1 + t ** 2 * p2
        sub.extend(map(tuple, pts))

    def arc(self, x, y, radius, start, end, anticlockwise=False):
        self.ellipse(x, y, radius, radius, 0.0, start, end, anticlockwise)

    def ellipse(self, x, y, rx, ry, rotation, start, end, anticlockwise=False):
        if rx < 0 or ry < 0:
            raise ValueError("ellipse radii must be non-negative")
        sweep = end - start
        if not anticlockwise and sweep >= TAU:
            sweep = TAU
        elif anticlockwise and -sweep >= TAU:
            sweep = -TAU
        elif anticlockwise:
            sweep = -((start - end) % TAU)
        else:
            sweep %= TAU
        steps = int(abs(sweep) / TAU * max(rx, ry) * self.scale * 0.75)
        steps = max(MIN_ARC_SEGMENTS, min(MAX_ARC_SEGMENTS, steps))
        cr, sr = math.cos(rotation), math.sin(rotation)
        pts = []
        for i in range(steps + 1):
            a = start + sweep * i / steps
            ex, ey = rx * math.cos(a), ry * math.sin(a)
            pts.append(self.to_device(x + ex * cr - ey * sr, y + ex * sr + ey * cr))
        if self._subpaths:
            self._subpaths[-1].extend(pts)
        else:
            self._subpaths.append(pts)

    def create_radial_gradient(self, x0, y0, r0, x1, y1, r1):
        return RadialGradient(x0, y0, r0, x1, y1, r1)

    def draw_sprite(self, key, extent, render):
        """Run render(canvas) around the current origin.

        key names what render draws and extent bounds it in local units;
        raster backends keep the result under key and only rotate it later.
        """
        render(self)

    def fill(self):
        polys = [np.array(s, dtype=float) for s in self._subpaths if len(s) >= 3]
        if polys:
            self._fill(polys)

    def stroke(self):
        lines = [np.array(s, dtype=float) for s in self._subpaths if len(s) >= 2]
        if lines:
            self._stroke(lines, self.line_width * self.scale)

    # ---------- backend ----------
    def clear(self, color=(0, 0, 0)):
        raise NotImplementedError

    def _fill(self, polys):
        raise NotImplementedError

    def _stroke(self, lines, width):
        raise NotImplementedError


class Canvas(BaseCanvas):
    """Canvas painting onto a pygame Surface (display or offscreen).

    Opaque solid shapes go straight onto the target with pygame.draw; anything
    translucent or glowing is drawn on a small SRCALPHA layer and blitted.
    Radial gradients are the only per-pixel (numpy) work.
    """

    def __init__(self, surface):
        super().__init__(*surface.get_size())
        self.surface = surface
        self._sprites = {}
        self._views = {}

    def set_surface(self, surface):
        self.surface = surface
        self.width, self.height = surface.get_size()

    def clear(self, color=(0, 0, 0)):
        # rotated sprites only live for one frame
        self._views.clear()
        self.surface.fill(to_rgba(color))

    # ---------- sprites ----------
    def draw_sprite(self, key, extent, render):
        sprite = self._sprites.get(key)
        if sprite is None:
            sprite = self._render_sprite(extent, render)
            self._sprites[key] = sprite
            if len(self._sprites) > SPRITE_CACHE_LIMIT:
                del self._sprites[next(iter(self._sprites))]
        opacity = self._opacity()
        if opacity <= 0:
            return
        m = self._matrix
        angle = math.degrees(math.atan2(m[1, 0], m[0, 0]))
        scale = self.scale
        view = (key, round(angle, 1), round(scale, 3))
        image = self._views.get(view)
        if image is None:
            # pygame turns counter-clockwise on screen, the canvas clockwise
            image = pygame.transform.rotozoom(sprite, -angle, scale)
            self._views[view] = image
        if opacity < 1:
            image = image.copy()
            image.set_alpha(int(round(opacity * 255)))
        cx, cy = self.to_device(0, 0)
        self.surface.blit(image, image.get_rect(center=(int(round(cx)), int(round(cy)))))

    def _render_sprite(self, extent, render):
        half = max(1, int(math.ceil(extent)))
        sprite = pygame.Surface((2 * half, 2 * half), pygame.SRCALPHA)
        painter = Canvas(sprite)
        for k in _STATE_KEYS:
            setattr(painter, k, getattr(self, k))
        painter.global_alpha = 1.0
        painter.translate(half, half)
        render(painter)
        return sprite

    # ---------- rasterising ----------
    def _glowing(self):
        return self.shadow_blur > 0 and to_rgba(self.shadow_color)[3] > 0

    def _opacity(self, coverage=1.0):
        return max(0.0, min(1.0, self.global_alpha)) * coverage

    def _bounds(self, paths, pad):
        pts = np.concatenate(paths)
        lo = pts.min(axis=0) - pad
        hi = pts.max(axis=0) + pad
        x0 = max(0, int(math.floor(lo[0])))
        y0 = max(0, int(math.floor(lo[1])))
        x1 = min(self.width, int(math.ceil(hi[0])))
        y1 = min(self.height, int(math.ceil(hi[1])))
        if x1 <= x0 or y1 <= y0:
            return None
        return x0, y0, x1 - x0, y1 - y0

    @staticmethod
    def _polygons(polys):
        def draw(target, color, left, top, grow=0):
            for poly in polys:
                pts = [(x - left, y - top) for x, y in poly]
                pygame.draw.polygon(target, color, pts)
                if grow > 0:
                    pygame.draw.lines(target, color, True, pts, 2 * grow)
        return draw

    def _polylines(self, lines, px):
        round_cap = self.line_cap == 'round'

        def draw(target, color, left, top, grow=0):
            width = px + 2 * grow
            for line in lines:
                pts = [(x - left, y - top) for x, y in line]
                pygame.draw.lines(target, color, False, pts, width)
                if width > 2:
                    # pygame leaves notches between thick segments; round joins fill them
                    for x, y in (pts if round_cap else pts[1:-1]):
                        pygame.draw.circle(target, color, (int(round(x)), int(round(y))), width // 2)
        return draw

    def _fill(self, polys):
        draw = self._polygons(polys)
        if isinstance(self.fill_style, RadialGradient):
            self._paint_gradient(draw, polys, 2, self.fill_style)
        else:
            self._paint_solid(draw, polys, 2, self.fill_style)

    def _stroke(self, lines, width):
        px = max(1, int(round(width)))
        draw = self._polylines(lines, px)
        # hairlines thinner than a pixel fade instead of vanishing
        coverage = min(1.0, width)
        if isinstance(self.stroke_style, RadialGradient):
            self._paint_gradient(draw, lines, px / 2 + 2, self.stroke_style, coverage)
        else:
            self._paint_solid(draw, lines, px / 2 + 2, self.stroke_style, coverage)

    def _paint_solid(self, draw, paths, pad, color, coverage=1.0):
        r, g, b, a = to_rgba(color)
        a = int(round(a * self._opacity(coverage)))
        if a <= 0:
            return
        glow = self._glowing()
        if a >= 255 and not glow:
            draw(self.surface, (r, g, b, 255), 0, 0)
            return
        box = self._bounds(paths, pad + (self.shadow_blur if glow else 0))
        if box is None:
            return
        left, top, w, h = box
        layer = pygame.Surface((w, h), pygame.SRCALPHA)
        if glow:
            self._halo(layer, draw, left, top)
        draw(layer, (r, g, b, a), left, top)
        self._blend(layer, left, top)

    def _paint_gradient(self, draw, paths, pad, gradient, coverage=1.0):
        opacity = self._opacity(coverage)
        if opacity <= 0:
            return
        glow = self._glowing()
        box = self._bounds(paths, pad + (self.shadow_blur if glow else 0))
        if box is None:
            return
        left, top, w, h = box
        if glow:
            halo = pygame.Surface((w, h), pygame.SRCALPHA)
            self._halo(halo, draw, left, top)
            self._blend(halo, left, top)
        mask = pygame.Surface((w, h), pygame.SRCALPHA)
        draw(mask, (255, 255, 255, 255), left, top)
        cover = pygame.surfarray.array_alpha(mask).astype(np.float32) / 255.0
        xs = np.arange(w, dtype=np.float64) + left + 0.5
        ys = np.arange(h, dtype=np.float64) + top + 0.5
        X, Y = np.meshgrid(xs, ys, indexing='ij')
        inv = np.linalg.inv(self._matrix)
        u = inv[0, 0] * X + inv[0, 1] * Y + inv[0, 2]
        v = inv[1, 0] * X + inv[1, 1] * Y + inv[1, 2]
        colors, valid = gradient.sample(u, v)
        alpha = cover * colors[..., 3] / 255.0 * valid * opacity
        self._blend(self._layer(colors[..., :3], alpha), left, top)

    def _halo(self, layer, draw, left, top):
        """Concentric rings in the shadow colour, widest and faintest first."""
        r, g, b, a = to_rgba(self.shadow_color)
        opacity = self._opacity()
        for i in range(GLOW_RINGS, 0, -1):
            grow = max(1, int(round(self.shadow_blur * i / GLOW_RINGS)))
            alpha = a * opacity * 0.5 * (GLOW_RINGS + 1 - i) / GLOW_RINGS
            draw(layer, (r, g, b, int(alpha)), left, top, grow)

    @staticmethod
    def _layer(rgb, alpha):
        w, h = alpha.shape
        layer = pygame.Surface((w, h), pygame.SRCALPHA)
        px = pygame.surfarray.pixels3d(layer)
        px[...] = np.clip(rgb, 0, 255).astype(np.uint8)
        del px
        pa = pygame.surfarray.pixels_alpha(layer)
        pa[...] = np.clip(alpha * 255.0, 0, 255).astype(np.uint8)
        del pa
        return layer

    def _blend(self, layer, left, top):
        if not self.surface.get_flags() & pygame.SRCALPHA:
            self.surface.blit(layer, (left, top))
            return
        # source-over onto a transparent target, without darkening the edges
        w, h = layer.get_size()
        src = pygame.surfarray.array3d(layer).astype(np.float32)
        sa = pygame.surfarray.array_alpha(layer).astype(np.float32) / 255.0
        dst = pygame.surfarray.pixels3d(self.surface)[left:left + w, top:top + h]
        dst_alpha = pygame.surfarray.pixels_alpha(self.surface)[left:left + w, top:top + h]
        da = dst_alpha.astype(np.float32) / 255.0 * (1.0 - sa)
        out_a = sa + da
        safe = np.where(out_a > 0, out_a, 1.0)[..., None]
        out = (src * sa[..., None] + dst.astype(np.float32) * da[..., None]) / safe
        dst[...] = np.clip(out, 0, 255).astype(np.uint8)
        dst_alpha[...] = np.clip(out_a * 255.0, 0, 255).astype(np.uint8)
        del dst, dst_alpha


class RecordingCanvas(BaseCanvas):
    """Headless canvas: keeps a log of clears, sprites, fills and strokes."""

    def __init__(self, width=800, height=600):
        super().__init__(width, height)
        self.calls = []

    def clear(self, color=(0, 0, 0)):
        self.calls.append(('clear', {'color': color}))

    def _snapshot(self, style, paths, width=None):
        return {
            'style': style,
            'alpha': self.global_alpha,
            'line_width': width,
            'line_cap': self.line_cap,
            'shadow_blur': self.shadow_blur,
            'shadow_color': self.shadow_color,
            'paths': paths,
        }

    def _fill(self, polys):
        self.calls.append(('fill', self._snapshot(self.fill_style, polys)))

    def _stroke(self, lines, width):
        self.calls.append(('stroke', self._snapshot(self.stroke_style, lines, width)))

    def draw_sprite(self, key, extent, render):
        self.calls.append(('sprite', {'key': key, 'extent': extent}))
        super().draw_sprite(key, extent, render)

    def ops(self, name):
        return [detail for op, detail in self.calls if op == name]

    def reset_log(self):
        self.calls = []
