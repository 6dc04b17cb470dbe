"""UI components for the assembly review screen."""
