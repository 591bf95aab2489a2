"""Graph substrate, cycle state, path results and I/O for mfepath."""
