"""Infrastructure shared by the hall coordinator: config, clock, HTTP, health."""
