"""Ready-made scenes.

Two scenes are provided:

Cornell box
    A closed room open toward the camera with a red left wall, a green
    right wall, white floor, ceiling and back wall, a one-sided ceiling
    light, a rotated tall white box and a glass ball. The light is
    registered as the light sampling target and the ball as the sphere
    target.

Ball field
    Three feature spheres (diffuse, metal, glass) on a large ground sphere,
    surrounded by a grid of small randomly colored balls. The grid is drawn
    from a seeded NumPy generator so a seed always gives the same scene.

The room spans x, y in [-5, 5] and z in [-20, -10]; the camera sits at the
origin looking down -z through the open front.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from raytrace.camera import setup_camera
    >>> from raytrace.scene.scenes import create_cornell_box_scene
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
"""

import numpy as np

from raytrace.camera.thin_lens import ThinLensCamera
from raytrace.core.utils import get_logger
from raytrace.scene.manager import SceneManager

logger = get_logger()

# =============================================================================
# Cornell Box Constants
# =============================================================================

ROOM_HALF_SIZE = 5.0
ROOM_NEAR_Z = -10.0
ROOM_FAR_Z = -20.0

RED_WALL_ALBEDO = (0.65, 0.05, 0.05)
GREEN_WALL_ALBEDO = (0.12, 0.45, 0.15)
WHITE_WALL_ALBEDO = (0.73, 0.73, 0.73)

LIGHT_EMISSION = (15.0, 15.0, 15.0)
# Light sits just below the ceiling so it never coincides with it
LIGHT_Y = 4.995
LIGHT_X_BOUNDS = (-2.5, 2.5)
LIGHT_Z_BOUNDS = (-16.25, -13.75)

TALL_BOX_MIN = (-3.5, -5.0, -18.5)
TALL_BOX_MAX = (-0.5, 1.0, -15.5)
TALL_BOX_ROTATION = 15.0

GLASS_BALL_CENTER = (1.75, -3.0, -13.625)
GLASS_BALL_RADIUS = 2.0
GLASS_IOR = 1.5

# =============================================================================
# Ball Field Constants
# =============================================================================

PEACH = (0.7, 0.3, 0.3)
AQUA = (0.0, 1.0, 1.0)
BEIGE = (0.8, 0.6, 0.2)

BALL_GRID_SIZE = 5
BALL_RADIUS = 0.2
BALL_SPACING = 0.75
BALL_JITTER = 0.9

SKY_COLOR = (0.7, 0.8, 1.0)


def create_cornell_box_scene(aspect_ratio: float = 1.0) -> tuple[SceneManager, ThinLensCamera]:
    """Create the Cornell box scene.

    Args:
        aspect_ratio: Width divided by height of the target image.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    scene = SceneManager()

    red = scene.add_lambertian_material(RED_WALL_ALBEDO)
    green = scene.add_lambertian_material(GREEN_WALL_ALBEDO)
    white = scene.add_lambertian_material(WHITE_WALL_ALBEDO)
    glass = scene.add_dielectric_material(GLASS_IOR)
    lamp = scene.add_light_material(LIGHT_EMISSION)

    s = ROOM_HALF_SIZE
    near, far = ROOM_NEAR_Z, ROOM_FAR_Z

    # Walls face into the room
    scene.add_yz_rect(-s, s, far, near, -s, red, facing=True)
    scene.add_yz_rect(-s, s, far, near, s, green, facing=False)
    scene.add_xz_rect(-s, s, far, near, -s, white, facing=True)
    scene.add_xz_rect(-s, s, far, near, s, white, facing=False)
    scene.add_xy_rect(-s, s, -s, s, far, white, facing=True)

    light = scene.add_xz_rect(*LIGHT_X_BOUNDS, *LIGHT_Z_BOUNDS, LIGHT_Y, lamp, facing=False)

    scene.add_box(TALL_BOX_MIN, TALL_BOX_MAX, white, rotation_degrees=TALL_BOX_ROTATION)
    ball = scene.add_sphere(GLASS_BALL_CENTER, GLASS_BALL_RADIUS, glass)

    scene.set_background((0.0, 0.0, 0.0))
    scene.set_light_target(light)
    scene.set_sphere_target(ball)
    scene.log_summary()

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=53.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera


def create_ball_scene(
    seed: int = 0,
    aspect_ratio: float = 16.0 / 9.0,
    background: tuple[float, float, float] = SKY_COLOR,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random ball field.

    The scene has no lights; the background is its only source of
    radiance.

    Args:
        seed: Seed for the ball grid.
        aspect_ratio: Width divided by height of the target image.
        background: Background radiance.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    peach = scene.add_lambertian_material(PEACH)
    aqua = scene.add_metal_material(AQUA, roughness=0.1)
    glass = scene.add_dielectric_material(1.5)
    beige = scene.add_lambertian_material(BEIGE)

    scene.add_sphere((0.0, 0.0, -3.5), 0.5, peach)
    scene.add_sphere((2.2, 0.5, -2.5), 1.0, aqua)
    scene.add_sphere((-1.6, 0.3, -2.0), 0.8, glass)
    scene.add_sphere((0.0, -1000.5, -2.0), 1000.0, beige)

    for a in range(-BALL_GRID_SIZE, BALL_GRID_SIZE):
        for b in range(-BALL_GRID_SIZE, BALL_GRID_SIZE - 1):
            radius = BALL_RADIUS * rng.uniform(0.5, 1.0)
            center = (
                a * BALL_SPACING + BALL_JITTER * rng.uniform(),
                radius - 0.5,
                b * BALL_SPACING + BALL_JITTER * rng.uniform(),
            )
            color = tuple(float(c) for c in rng.uniform(0.0, 1.0, size=3))
            choice = rng.uniform()
            if choice < 0.8:
                material = scene.add_lambertian_material(color)
            elif choice < 0.95:
                material = scene.add_metal_material(color, roughness=float(rng.uniform()))
            else:
                material = scene.add_dielectric_material(1.5)
            scene.add_sphere(center, float(radius), material)

    scene.set_background(background)
    scene.log_summary()

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.5, 2.0),
        lookat=(0.0, 0.0, -2.5),
        vup=(0.0, 1.0, 0.0),
        vfov=60.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera
