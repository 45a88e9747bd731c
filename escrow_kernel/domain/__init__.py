"""Pure domain layer: lifecycles, identity, DTOs and the clock."""
