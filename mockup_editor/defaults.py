"""
Shared defaults for mockup_editor.
"""

# Background keying
KEY_TOLERANCE = 30
DECODE_TIMEOUT_S = 8.0

# Removal region
REGION_PADDING = 10
BRUSH_MIN = 5
BRUSH_MAX = 50
BRUSH_STEP = 5
BRUSH_DEFAULT = 20

# Local diffusion fill
MAX_PASSES = 20
RELAX_AFTER_PASS = 10
MIN_RESOLVE_NEIGHBORS = 3

# Marks (display units)
MARK_MAX_DISPLAY = 150
MARK_MIN_SIZE = 5
MARK_CASCADE_ORIGIN = 50
MARK_CASCADE_STEP = 30

# Export
EXPORT_FORMAT = 'JPEG'
EXPORT_QUALITY = 90

# Remote provider
PROVIDER_TIMEOUT_S = 20.0
PROVIDER_TOKEN_URL = 'https://aip.baidubce.com/oauth/2.0/token'
PROVIDER_INPAINT_URL = 'https://aip.baidubce.com/rest/2.0/image-process/v1/inpainting'
