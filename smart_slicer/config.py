# config.py
"""
Application configuration constants for Smart Slicer
"""

# Grid defaults
DEFAULT_ROWS = 4
DEFAULT_COLUMNS = 4
DEFAULT_CROP = (0.0, 0.0, 100.0, 100.0)  # x, y, w, h in percent
MIN_CROP_SIZE_PX = 20  # Smallest crop edge the editor allows

# Matting thresholds
MATTE_ALPHA_THRESHOLD = 20   # alpha below this is treated as background
MATTE_WHITE_THRESHOLD = 240  # R, G and B above this are treated as background

# Stroke settings
DEFAULT_STROKE_WIDTH = 6
STROKE_WIDTH_MIN = 1
STROKE_WIDTH_MAX = 20
DEFAULT_STROKE_COLOR = (255, 255, 255)
# Configured widths are doubled before blur/padding are derived from them.
# Product owners can retune the visual weight here.
STROKE_WIDTH_MULTIPLIER = 2
STROKE_PADDING_EXTRA = 4
SHADOW_PASSES = 12

# Filters
FILTER_NAMES = (
    "grayscale",
    "sepia",
    "brightness",
    "vibrant",
    "cinematic",
    "japanese",
    "warm",
)
BRIGHTNESS_DELTA = 30
VIBRANT_SATURATION_BOOST = 1.4
CINEMATIC_SATURATION = 0.6
CINEMATIC_VIGNETTE_STRENGTH = 0.5
JAPANESE_BRIGHTNESS_DELTA = 40
JAPANESE_CONTRAST = 0.7
JAPANESE_TINT = (-10, 0, 15)
WARM_TINT = (25, 10, -15)

# Supported image formats
SUPPORTED_IMAGE_FORMATS = ['png', 'jpg', 'jpeg', 'bmp', 'webp', 'gif', 'tiff']

# Image dimension limits
MAX_IMAGE_DIMENSION = 12000   # Maximum width/height for loaded sources
MAX_CANVAS_DIMENSION = 16384  # Largest drawing surface we will allocate

# Result cache settings
MAX_CACHE_SIZE = 64
CACHE_CLEANUP_THRESHOLD = 0.8  # Cleanup when cache reaches 80% of max size

# Export settings
EXPORT_ARCHIVE_NAME = "smart_slices.zip"
SLICE_FILENAME_TEMPLATE = "slice_{index}.png"
PNG_COMPRESS_LEVEL = 6

# Cinematic split-tone offsets (R, G, B)
CINEMATIC_SHADOW_TINT = (-10, 5, 20)      # luminance < 128: toward cyan/blue
CINEMATIC_HIGHLIGHT_TINT = (20, 8, -15)   # luminance >= 128: toward orange
