"""HTTP API package for Tubely."""
