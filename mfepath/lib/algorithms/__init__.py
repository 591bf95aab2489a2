"""Path-finding algorithms over landscape graphs."""
