"""Domain states, rules and error taxonomy for the flight lifecycle."""
