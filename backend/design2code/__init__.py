"""Design2Code backend: project store, plan lifecycle and projects API."""
