"""Domain services for toolsmith."""
