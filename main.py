# main.py

import logging

import numpy as np
import pygame

import constants
import logger_setup
from engine import SimulationEngine
from experiments import EXPERIMENTS
from experiments.photoelectric import METALS
from renderer import PygameRenderer

# Get the application's dedicated logger
logger = logging.getLogger("lab_sim")

# Fraction of a parameter's range moved by one arrow key press
KEY_STEP = 0.02


def nudge(engine, index: int, direction: int):
    """Moves the index-th parameter of the experiment by one key step."""
    names = list(engine.store.specs)
    if index >= len(names):
        return
    name = names[index]
    spec = engine.store.specs[name]
    step = 1.0 if spec.integer else (spec.maximum - spec.minimum) * KEY_STEP
    engine.set_parameter(name, engine.get_parameter(name) + direction * step)


def build_engine(name: str, config: dict, rng: np.random.Generator) -> SimulationEngine:
    logger.info(f"Switching to experiment '{name}'.")
    return SimulationEngine(name, rng=rng, config=config)


def run_loop(engine, config, rng, renderer, clock):
    """
    The interactive loop: keyboard and mouse feed the control boundary, the
    frame timestamp drives one engine tick, the snapshot goes to the renderer.
    """
    names = list(EXPERIMENTS)
    metals = list(METALS)
    metal_index = 0
    running = True

    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_RIGHT:
                    nudge(engine, 0, +1)
                elif event.key == pygame.K_LEFT:
                    nudge(engine, 0, -1)
                elif event.key == pygame.K_UP:
                    nudge(engine, 1, +1)
                elif event.key == pygame.K_DOWN:
                    nudge(engine, 1, -1)
                elif event.key == pygame.K_SPACE:
                    engine.fire_once()
                elif event.key == pygame.K_r:
                    engine.reset()
                elif event.key == pygame.K_a and engine.experiment.name == "franck_hertz":
                    engine.start_auto_scan()
                elif event.key == pygame.K_m and engine.experiment.name == "photoelectric":
                    metal_index = (metal_index + 1) % len(metals)
                    engine.select_metal(metals[metal_index])
                elif event.key == pygame.K_s and engine.experiment.name == "millikan":
                    engine.toggle_stopwatch()
                elif event.key == pygame.K_TAB:
                    current = names.index(engine.experiment.name)
                    engine = build_engine(names[(current + 1) % len(names)], config, rng)
            elif event.type == pygame.MOUSEBUTTONDOWN and engine.experiment.name == "millikan":
                engine.select_drop(*event.pos)

        snapshot = engine.tick(pygame.time.get_ticks())

        # --- Logging (throttled) ---
        if snapshot.tick % 100 == 0:
            logger.debug(
                f"Tick={snapshot.tick}, "
                f"Experiment={snapshot.experiment}, "
                f"Particles={len(snapshot.particles)}, "
                f"Measurement={snapshot.measurement:.4f}"
            )

        renderer.draw(snapshot)
        clock.tick(constants.FPS)


def main():
    """
    Main function to initialize and run the interactive lab.
    """
    # --- Setup ---
    config = logger_setup.load_config('config.json')
    logger_setup.setup_logging(config=config)

    logger.info("Application starting...")
    logger.info(f"Loaded configuration: {config}")

    # Initialize the master random number generator (RNG)
    rng = np.random.default_rng(config['master_seed'])
    logger.info(f"Master RNG initialized with seed: {config['master_seed']}")

    # --- Initialization ---
    pygame.init()
    screen = pygame.display.set_mode((constants.WIDTH, constants.HEIGHT))
    pygame.display.set_caption(constants.TITLE)
    clock = pygame.time.Clock()

    engine = build_engine(config.get('experiment', 'photoelectric'), config, rng)
    renderer = PygameRenderer(screen)

    run_loop(engine, config, rng, renderer, clock)

    logger.info("Application shutting down.")
    pygame.quit()


if __name__ == "__main__":
    main()
