"""Command-line front end for taskwire."""
