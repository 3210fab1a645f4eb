"""OutDrinkMe notification backend."""
