"""Hillsborough County Property Appraiser (hcpafl.org) parcel pages."""
