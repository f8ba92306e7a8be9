"""Domain layer: types, events and protocols shared by the connection stack."""
