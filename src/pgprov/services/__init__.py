"""Connection resolution, command builders, predicates and platform paths."""
