"""Post-run analysis of written control-flow graphs."""
