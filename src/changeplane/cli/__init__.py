"""ChangePlane CLI."""
