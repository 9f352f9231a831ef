"""Speech generation services."""
