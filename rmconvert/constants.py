"""
Shared constants for the reMarkable bundle converter.
"""

from .parser import Pen, PenColor

# reMarkable screen dimensions (device pixels)
REMARKABLE_WIDTH = 1404
REMARKABLE_HEIGHT = 1872

# Tokens the stroke rasterizer authors every stroke with
DEFAULT_INK_COLOR = "blue"
DEFAULT_STROKE_WIDTH = 0.87
HIDDEN_OPACITY = "0"

# Margin highlight width (points)
MARGIN_WIDTH = 10.0

# Opacity of the white rectangle laid over pages when paling
PALING_OPACITY = 0.5

# Ink for each pen color. Black pens draw in the default ink so that a
# recolor only touches the "main" ink of a page.
COLOR_MAP_NAMED = {
    PenColor.BLACK: DEFAULT_INK_COLOR,
    PenColor.GRAY: "red",
    PenColor.WHITE: "white",
    PenColor.YELLOW: "#ffeb3b",
    PenColor.GREEN: "#4caf50",
    PenColor.PINK: "#e91e63",
    PenColor.BLUE: "#304ae0",  # reMarkable uses #304AE0
    PenColor.RED: "#f44336",
    PenColor.GRAY_OVERLAP: "#9e9e9e",
    PenColor.HIGHLIGHT: "#ffeb3b",
    PenColor.GREEN_2: "#8bc34a",
    PenColor.CYAN: "#00bcd4",
    PenColor.MAGENTA: "#9c27b0",
    PenColor.YELLOW_2: "#ffc107",
}

# Pens that should render as semi-transparent
TRANSPARENT_PENS = {Pen.HIGHLIGHTER, Pen.HIGHLIGHTER_2, Pen.SHADER}
HIGHLIGHTER_OPACITY = "0.4"

# Eraser pens
ERASER_PENS = {Pen.ERASER, Pen.ERASER_AREA}
