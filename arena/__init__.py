"""Arena tournament and wallet backend."""
