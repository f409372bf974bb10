"""
Common — shared value types, image intake, configuration and logging.

- types.py: Point2D / Quadrilateral / CameraPose and the DetectionResult union
- imaging.py: raw/encoded buffer intake and grayscale conversion
- config.py: config/params.yaml loading with built-in defaults
- logging_setup.py: JSON log formatting
"""
__version__ = "1.0.0"
