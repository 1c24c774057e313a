# constants.py

"""
Application Constants

This module defines static configuration values for the lab simulations.
These are not expected to change between simulation runs.

Data Contract:
- All values are immutable constants.
- Units are specified in comments where applicable.
"""

# Screen dimensions
WIDTH = 800  # Pixels
HEIGHT = 500  # Pixels

# Framerate
FPS = 60  # Frames per second
# Scene velocities of the tube experiments are tuned in pixels per frame at this rate.
REFERENCE_FPS = 60.0

# Window Title
TITLE = "Physics Lab"

# --- Physical constants ---
HC_EV_NM = 1240.0           # h*c in eV*nm (also keV*pm)
HC_KEV_PM = 1240.0          # h*c in keV*pm
PLANCK = 6.626e-34          # J*s
ELEMENTARY_CHARGE = 1.602e-19  # C
COMPTON_WAVELENGTH_PM = 2.43   # pm
ELECTRON_REST_ENERGY_KEV = 511.0  # keV

# Millikan chamber (SI)
GRAVITY = 9.80              # m/s^2
RHO_OIL = 875.0             # kg/m^3
RHO_AIR = 1.225             # kg/m^3
AIR_VISCOSITY = 1.81e-5     # Pa*s
PLATE_DISTANCE = 0.005      # m
MILLIKAN_SCALE = 100000.0   # Pixels per metre (1 mm = 100 px)

# Franck-Hertz tube (mercury)
EXCITATION_ENERGY = 4.9     # eV
CONTACT_POTENTIAL = 2.0     # V

# --- Scene geometry (pixels) ---
PHOTO_CATHODE_CENTER = (350.0, 250.0)  # Centre of curvature of the dish
PHOTO_CATHODE_RADIUS = 180.0
PHOTO_CATHODE_SPREAD = 0.6             # Radians either side of the axis
PHOTO_ANODE = (300.0, 250.0, 10.0, 200.0)  # x, y (centre), width, height
PHOTO_TUBE_TOP = 130.0
PHOTO_TUBE_BOTTOM = 370.0

FH_CATHODE_X = 40.0
FH_GRID_X = WIDTH - 60.0
FH_ANODE_X = WIDTH - 20.0

COMPTON_CENTER = (400.0, 300.0)
COMPTON_SOURCE_X = 50.0
COMPTON_DETECTOR_RADIUS = 200.0
COMPTON_SCREEN = (800.0, 600.0)

SNELL_START = (0.15, 0.2)
SNELL_END = (0.85, 0.8)
SNELL_BOUNDARY_Y = 0.5
SNELL_DISTANCE_SCALE = 100.0  # Metres per relative unit

# Colors (RGB)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
GREY = (100, 116, 139)
AMBER = (245, 158, 11)
CYAN = (0, 188, 212)

# Category colors used by the renderer, indexed by particle.Category.
CATEGORY_COLORS = {
    0: (255, 255, 200),   # Oil drop
    1: (56, 189, 248),    # Photoelectron
    2: (255, 255, 255),   # Tube electron
    3: (0, 188, 212),     # Tube electron after an inelastic collision
    4: (250, 204, 21),    # Incident photon
    5: (168, 85, 247),    # Scattered photon
    6: (244, 63, 94),     # Recoil electron
    7: (14, 165, 233),    # Ether wind
}

# Visible spectrum as a series of keyframes.
# Each keyframe is a tuple: (wavelength_nm, (R, G, B) color).
SPECTRUM_KEYFRAMES = [
    (380.0, (75, 0, 130)),       # Violet
    (440.0, (0, 0, 255)),        # Blue
    (490.0, (0, 255, 255)),      # Cyan
    (510.0, (0, 255, 0)),        # Green
    (580.0, (255, 255, 0)),      # Yellow
    (645.0, (255, 0, 0)),        # Red
    (780.0, (128, 0, 0))         # Deep red
]

# Visual Effects
TRAIL_EFFECT_COLOR = (0, 0, 0, 60)  # RGBA. Alpha controls trail length (lower = longer).
