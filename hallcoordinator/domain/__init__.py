"""Pure hall coordination logic: timing, delay, status, contacts and people."""
