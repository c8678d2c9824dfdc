"""Taichi-based Monte Carlo path tracer.

This package renders scenes of spheres, axis-aligned rectangles and boxes
with Lambertian, metal, dielectric and light materials. Diffuse bounces mix
hemisphere, light and sphere sampling with densities reweighted per bounce.

Subpackages:
    core: Rays, random streams, importance sampling, integrator and rendering loop
    geometry: Shape primitives and intersection routines
    materials: Scatter, emission and density models
    scene: Primitive storage, scene manager and ready-made scenes
    camera: Look-at camera with optional depth of field
    preview: Image export
"""

__version__ = "0.1.0"
