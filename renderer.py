# renderer.py

import logging

import numpy as np
import pygame

import constants
from experiments.michelson_morley import fringe_pattern
from measurement import Stopwatch
from particle import Category

logger = logging.getLogger("lab_sim")

PLOT_RECT = pygame.Rect(constants.WIDTH - 260, 10, 250, 150)

# Display scalars shown in the HUD, per experiment: (key, label, format).
# A format is a str.format pattern or a callable returning the text.
HUD_FIELDS = {
    "millikan": [
        ("voltage", "U", "{:.0f} V"),
        ("selected_radius_um", "r", "{:.3f} um"),
        ("selected_velocity", "v", "{:.2e} m/s"),
        ("balance_voltage", "U balance", "{:.0f} V"),
        ("stopwatch_ms", "stopwatch", Stopwatch.format),
    ],
    "photoelectric": [
        ("wavelength", "lambda", "{:.0f} nm"),
        ("intensity", "I", "{:.0f} %"),
        ("voltage", "U", "{:+.2f} V"),
        ("work_function", "W", "{:.2f} eV"),
        ("photon_energy_ev", "E photon", "{:.2f} eV"),
        ("max_kinetic_energy_ev", "KE max", "{:.2f} eV"),
    ],
    "franck_hertz": [
        ("accelerating_voltage", "U acc", "{:.1f} V"),
        ("retarding_voltage", "U ret", "{:.1f} V"),
        ("temperature", "T", "{:.0f} C"),
        ("current", "I (model)", "{:.2f}"),
    ],
    "compton": [
        ("wavelength", "lambda", "{:.1f} pm"),
        ("angle", "theta", "{:.0f} deg"),
        ("shift_pm", "d lambda", "{:.3f} pm"),
        ("scattered_energy_kev", "E'", "{:.2f} keV"),
        ("electron_energy_kev", "K e", "{:.2f} keV"),
        ("recoil_angle_deg", "phi", "{:.1f} deg"),
    ],
    "michelson_morley": [
        ("ether_speed", "v", "{:.2f} c"),
        ("angle", "angle", "{:.0f} deg"),
        ("fringe_shift", "shift", "{:+.2f}"),
    ],
    "malus": [
        ("theta1", "theta1", "{:.0f} deg"),
        ("theta2", "theta2", "{:.0f} deg"),
        ("intensity_after_polarizer", "I1", "{:.1f}"),
        ("intensity_after_analyzer", "I2", "{:.1f}"),
    ],
    "diffraction": [
        ("wavelength", "lambda", "{:.0f} nm"),
        ("slit_width", "a", "{:.2f} mm"),
        ("slit_separation", "d", "{:.2f} mm"),
        ("fringe_spacing_mm", "dy", "{:.2f} mm"),
    ],
    "snell": [
        ("v1", "v1", "{:.1f} m/s"),
        ("v2", "v2", "{:.1f} m/s"),
        ("travel_time_s", "t", "{:.2f} s"),
        ("min_time_s", "t min", "{:.2f} s"),
        ("sin_ratio", "sin1/sin2", "{:.3f}"),
        ("velocity_ratio", "v1/v2", "{:.3f}"),
    ],
}


def hud_lines(snapshot) -> list:
    """Text lines of the HUD panel for a snapshot."""
    lines = [f"{snapshot.experiment}  t={snapshot.time_ms / 1000.0:.1f}s  "
             f"measurement={snapshot.measurement:.3f}"]
    for key, label, fmt in HUD_FIELDS.get(snapshot.experiment, []):
        if key in snapshot.derived:
            value = snapshot.derived[key]
            text = fmt(value) if callable(fmt) else fmt.format(value)
            lines.append(f"{label}: {text}")
    return lines


def interpolate_color(value: float, keyframes):
    """
    Calculates a smooth color by linearly interpolating between keyframes.
    Values outside the keyframe range take the nearest end color.
    """
    if value <= keyframes[0][0]:
        return keyframes[0][1]
    for i in range(len(keyframes) - 1):
        pos1, color1 = keyframes[i]
        pos2, color2 = keyframes[i + 1]
        if pos1 <= value <= pos2:
            local_t = (value - pos1) / (pos2 - pos1)
            r = int(color1[0] * (1 - local_t) + color2[0] * local_t)
            g = int(color1[1] * (1 - local_t) + color2[1] * local_t)
            b = int(color1[2] * (1 - local_t) + color2[2] * local_t)
            return (r, g, b)
    return keyframes[-1][1]


def wavelength_to_rgb(wavelength_nm: float):
    """Visible light color; ultraviolet and beyond is drawn violet-grey."""
    if wavelength_nm < constants.SPECTRUM_KEYFRAMES[0][0]:
        return (150, 120, 200)
    return interpolate_color(wavelength_nm, constants.SPECTRUM_KEYFRAMES)


class PygameRenderer:
    """
    Draws RenderSnapshots into a pygame window. Holds no simulation state; the
    only thing it keeps between frames is the trail surface and a cached
    fringe image.
    """
    def __init__(self, screen: pygame.Surface, font: pygame.font.Font = None):
        self.screen = screen
        self.font = font or pygame.font.SysFont(None, 20)
        self.trail_surface = pygame.Surface(screen.get_size(), pygame.SRCALPHA)
        self.trail_surface.fill(constants.TRAIL_EFFECT_COLOR)
        self._fringe_key = None
        self._fringe_surface = None

    def draw(self, snapshot):
        self.screen.blit(self.trail_surface, (0, 0))

        scene = getattr(self, f"_draw_{snapshot.experiment}", None)
        if scene is not None:
            scene(snapshot)

        self._draw_particles(snapshot)
        self._draw_flashes(snapshot)
        for name, points in snapshot.series.items():
            self._draw_plot(name, points)
            break
        self._draw_hud(snapshot)
        pygame.display.flip()

    # --- Shared layers ---
    def _draw_particles(self, snapshot):
        for p in snapshot.particles:
            color = constants.CATEGORY_COLORS.get(int(p.category), constants.WHITE)
            if p.category == Category.INCIDENT_PHOTON or p.category == Category.SCATTERED_PHOTON:
                radius = 4
            elif p.category == Category.OIL_DROP:
                radius = 3
            else:
                radius = 2
            shade = tuple(int(c * max(0.2, min(1.0, p.intensity))) for c in color)
            pygame.draw.circle(self.screen, shade, (int(p.x), int(p.y)), radius)

    def _draw_flashes(self, snapshot):
        for flash in snapshot.flashes:
            level = max(0.0, min(1.0, flash.opacity))
            color = tuple(int(c * level) for c in constants.CYAN)
            pygame.draw.circle(self.screen, color, (int(flash.x), int(flash.y)), 6, 1)

    def _draw_plot(self, name, points):
        pygame.draw.rect(self.screen, constants.BLACK, PLOT_RECT)
        pygame.draw.rect(self.screen, constants.GREY, PLOT_RECT, 1)
        self.screen.blit(self.font.render(name, True, constants.GREY), (PLOT_RECT.x + 4, PLOT_RECT.y + 2))
        if len(points) < 2:
            return
        xs = np.array([p[0] for p in points], dtype=float)
        ys = np.array([p[1] for p in points], dtype=float)
        x_span = max(xs.max() - xs.min(), 1e-9)
        y_low = min(ys.min(), 0.0)
        y_span = max(ys.max() - y_low, 1e-9)
        pixels = [
            (PLOT_RECT.x + 5 + (x - xs.min()) / x_span * (PLOT_RECT.width - 10),
             PLOT_RECT.bottom - 5 - (y - y_low) / y_span * (PLOT_RECT.height - 25))
            for x, y in zip(xs, ys)
        ]
        pygame.draw.lines(self.screen, constants.AMBER, False, pixels, 1)

    def _draw_hud(self, snapshot):
        lines = hud_lines(snapshot)
        pygame.draw.rect(self.screen, constants.BLACK, pygame.Rect(5, 5, 330, 10 + len(lines) * 18))
        for i, line in enumerate(lines):
            self.screen.blit(self.font.render(line, True, constants.WHITE), (10, 10 + i * 18))

    # --- Scene backgrounds ---
    def _draw_millikan(self, snapshot):
        pygame.draw.line(self.screen, constants.GREY, (0, 0), (constants.WIDTH, 0), 4)
        pygame.draw.line(self.screen, constants.GREY, (0, constants.HEIGHT - 2), (constants.WIDTH, constants.HEIGHT - 2), 4)

    def _draw_photoelectric(self, snapshot):
        cx, cy = constants.PHOTO_CATHODE_CENTER
        r = constants.PHOTO_CATHODE_RADIUS
        spread = constants.PHOTO_CATHODE_SPREAD
        arc_rect = pygame.Rect(cx - r, cy - r, 2 * r, 2 * r)
        pygame.draw.arc(self.screen, constants.GREY, arc_rect, -spread, spread, 3)
        x, y, w, h = constants.PHOTO_ANODE
        pygame.draw.rect(self.screen, constants.GREY, pygame.Rect(x, y - h / 2, w, h))
        beam = wavelength_to_rgb(snapshot.derived.get("wavelength", 500.0))
        pygame.draw.line(self.screen, beam, (cx + r + 60, cy - 120), (cx + r, cy), 2)

    def _draw_franck_hertz(self, snapshot):
        for x in (constants.FH_CATHODE_X, constants.FH_ANODE_X):
            pygame.draw.line(self.screen, constants.GREY, (x, 40), (x, constants.HEIGHT - 40), 3)
        for y in range(40, constants.HEIGHT - 40, 8):
            pygame.draw.line(self.screen, constants.GREY, (constants.FH_GRID_X, y), (constants.FH_GRID_X, y + 4), 1)

    def _draw_compton(self, snapshot):
        cx, cy = constants.COMPTON_CENTER
        pygame.draw.circle(self.screen, constants.GREY, (int(cx), int(cy)),
                           int(constants.COMPTON_DETECTOR_RADIUS), 1)
        if snapshot.derived.get("target_present", 1.0) >= 0.5:
            pygame.draw.circle(self.screen, constants.CATEGORY_COLORS[Category.RECOIL_ELECTRON], (int(cx), int(cy)), 6)

    def _draw_michelson_morley(self, snapshot):
        derived = snapshot.derived
        key = (derived["ether_speed"], derived["angle"], derived["wavelength"], derived["relativity"])
        if key != self._fringe_key:
            size = 200
            pattern = fringe_pattern(derived, size, size)
            r, g, b = wavelength_to_rgb(derived["wavelength"])
            rgb = np.stack((pattern * r, pattern * g, pattern * b), axis=-1).astype(np.uint8)
            # surfarray is indexed [x, y]
            self._fringe_surface = pygame.surfarray.make_surface(rgb.transpose(1, 0, 2))
            self._fringe_key = key
        self.screen.blit(self._fringe_surface, (constants.WIDTH // 2 - 100, constants.HEIGHT // 2 - 100))

    def _draw_malus(self, snapshot):
        derived = snapshot.derived
        cy = constants.HEIGHT // 2
        stages = [
            (150, derived["source_intensity"]),
            (400, derived["intensity_after_polarizer"]),
            (650, derived["intensity_after_analyzer"]),
        ]
        for x, intensity in stages:
            level = int(255 * max(0.0, min(1.0, intensity / 100.0)))
            pygame.draw.circle(self.screen, (level, level, 0), (x, cy), 30)

    def _draw_diffraction(self, snapshot):
        profile = snapshot.series.get("profile", ())
        if not profile:
            return
        color = wavelength_to_rgb(snapshot.derived["wavelength"])
        top = constants.HEIGHT - 60
        for i, (_, intensity) in enumerate(profile):
            x = int(i * constants.WIDTH / len(profile))
            shade = tuple(int(c * intensity) for c in color)
            pygame.draw.line(self.screen, shade, (x, top), (x, top + 40), 2)

    def _draw_snell(self, snapshot):
        w, h = constants.WIDTH, constants.HEIGHT
        boundary = int(constants.SNELL_BOUNDARY_Y * h)
        pygame.draw.rect(self.screen, (20, 40, 90), pygame.Rect(0, boundary, w, h - boundary))
        sx, sy = constants.SNELL_START
        ex, ey = constants.SNELL_END
        crossing = snapshot.derived["crossing"]
        color = constants.AMBER if snapshot.derived.get("optimal", 0.0) >= 0.5 else constants.WHITE
        pygame.draw.lines(self.screen, color, False,
                          [(sx * w, sy * h), (crossing * w, boundary), (ex * w, ey * h)], 2)
