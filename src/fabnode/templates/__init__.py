"""Static configuration templates shipped with fabnode."""
