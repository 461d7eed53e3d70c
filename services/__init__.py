"""Domain services. Each function takes the database handle and the acting user's id explicitly."""
