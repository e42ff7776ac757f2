"""
Takeoff constants used across all modules.

Scale sentinels, architectural scale table, corner inference tolerances,
confidence thresholds and geometry tolerances.
"""

# Pages that were never calibrated carry this scale ratio (pixels per foot).
# It equals 1/4" = 1'-0" at 192 DPI, which is what the extraction pipeline
# assigns by default.
UNCALIBRATED_SCALE_RATIO = 48.0

# Common architectural scales: (notation, pixels per foot at nominal DPI)
# ratio = 12 inches per foot / scale fraction in inches
ARCHITECTURAL_SCALES = [
    ('1" = 1\'-0"', 12.0),
    ('3/4" = 1\'-0"', 16.0),
    ('1/2" = 1\'-0"', 24.0),
    ('3/8" = 1\'-0"', 32.0),
    ('1/4" = 1\'-0"', 48.0),
    ('3/16" = 1\'-0"', 64.0),
    ('1/8" = 1\'-0"', 96.0),
    ('1/16" = 1\'-0"', 192.0),
]
SCALE_NOTATION_TOLERANCE = 0.30     # relative error accepted for a notation match

# Corner inference (pixels)
CORNER_ROW_TOLERANCE_PX = 50.0      # walls whose vertical centers chain within this share a row
CORNER_GAP_THRESHOLD_PX = 10.0      # horizontal gap that makes two inside corners

# Measurement policy
HORIZONTAL_EDGE_TOLERANCE_DEG = 5.0  # edges flatter than this are horizontal
VERTICAL_EDGE_TOLERANCE_DEG = 5.0    # edges steeper than 90 minus this are vertical
BASELINE_TOLERANCE_PX = 2.0          # vertices this close to the lowest y sit on the baseline

# Split operator
SPLIT_AREA_RELATIVE_TOLERANCE = 1e-6

# Confidence thresholds (detections from the extraction pipeline)
CONFIDENCE_HIGH = 0.85
CONFIDENCE_MEDIUM = 0.70
CONFIDENCE_LOW = 0.50

# Siding is sold by the square (100 SF)
SQUARE_FEET_PER_SQUARE = 100.0
