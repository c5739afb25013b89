"""Collier County Property Appraiser (collierappraiser.com) parcel pages."""
