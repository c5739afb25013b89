"""Leon County Property Appraiser parcel page."""
