"""Miami-Dade Property Appraiser property search JSON."""
