"""Discord messaging transport."""
