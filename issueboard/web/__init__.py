"""HTTP surface: page rendering and server."""
