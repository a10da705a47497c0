"""Service layer: lifecycle managers, AI and notifications."""
