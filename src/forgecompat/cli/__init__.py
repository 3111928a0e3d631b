"""forgecompat command-line interface."""
