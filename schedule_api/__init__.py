"""HTTP surface for the premium schedule engine."""
