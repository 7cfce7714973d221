"""CommanderForge: Commander deck assembly engine."""
