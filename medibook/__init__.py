"""MediBook: doctor appointment booking API."""
