"""Domain primitives shared by the enrollment services."""
