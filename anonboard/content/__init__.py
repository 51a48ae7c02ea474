"""Posts, comments, polls, and their public per-viewer projection."""
