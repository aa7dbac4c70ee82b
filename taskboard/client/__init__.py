"""Client-side board state kept eventually consistent with the server."""
