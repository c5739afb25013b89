"""Palm Beach Property Appraiser parcel page with its embedded ``var model`` JSON."""
