"""Speed-scaled, pausable step timing."""
