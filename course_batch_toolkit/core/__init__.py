"""GUI-agnostic core: course model, restructuring engine, archive codec and services."""
