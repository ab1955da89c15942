# Define a static color class for consistent use across the app


class Colors:
    # Text
    light_gray = "#9ca3af"  # Axis ticks, captions

    # Semantic: best / worst rank
    green = "#059669"  # Emerald 600
    red = "#e11d48"  # Rose 600

    # Chart
    grid = "rgba(0, 0, 0, 0.03)"
