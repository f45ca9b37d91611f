"""Qt widgets for the assistant UI."""
