"""Secret Santa organizer."""
