"""Plugin hookspecs and manager."""
