"""Protection of secret values at rest."""
