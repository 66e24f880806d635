"""Content-defined chunking and block map building."""
