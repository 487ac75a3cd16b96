"""User interfaces for parcelbook."""
