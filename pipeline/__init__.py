"""Pipeline configuration, error taxonomy and batch runner.

Modules:
    config: Default configuration, JSON loading, configuration objects
    errors: DensityMapError and its subclasses
    runner: run_pipeline() (import it from pipeline.runner)
"""
