"""Pure domain primitives: clock, money, enumerations and read DTOs."""
