"""GeoVault command-line interface."""
