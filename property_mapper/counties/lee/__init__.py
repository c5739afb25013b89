"""Lee County Property Appraiser (leepa.org) parcel pages."""
