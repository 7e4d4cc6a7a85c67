"""HTTP surface of the Tubely backend."""
