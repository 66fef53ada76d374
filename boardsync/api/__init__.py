"""HTTP reporting surface for sync status."""
