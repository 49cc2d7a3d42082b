"""
Guard Patrol
Interactive demo of heartbeat-fsm: guards patrol, chase the mouse cursor when
it comes close, give up when it escapes, and walk back to their post.

Controls:
  Mouse       Move the intruder
  Left-click  Place a new guard
  Space       Pause / Resume
  D           Destroy the oldest guard
  Escape      Quit
"""

import math
import random
import sys
from dataclasses import dataclass, field

import pygame

from heartbeat import Engine, LoopConfig
from heartbeat_fsm import MachineRegistry, State, StateMachine, Transition

# --- Configuration ---
WIDTH, HEIGHT = 960, 640
FPS = 60
TITLE = "heartbeat-fsm Guard Patrol"

PATROL_RADIUS = 60.0
PATROL_SPEED = 1.5  # radians per second around the post
CHASE_SPEED = 140.0
RETURN_SPEED = 90.0
SIGHT_RANGE = 120.0
LOSE_RANGE = 200.0
GUARD_RADIUS = 10

# Colors
BG_COLOR = (26, 26, 46)
HUD_COLOR = (200, 200, 220)
POST_COLOR = (70, 70, 100)
INTRUDER_COLOR = (255, 215, 0)
STATE_COLORS = {
    "Patrolling": (0, 255, 100),
    "Chasing": (255, 60, 60),
    "Returning": (100, 200, 255),
}


# --- Shared payload ---
@dataclass
class Guard:
    post: tuple[float, float]
    position: tuple[float, float]
    intruder: list[tuple[float, float]]  # shared, one-element cell
    angle: float = 0.0
    trail: list[str] = field(default_factory=list)

    def distance_to(self, point: tuple[float, float]) -> float:
        return math.dist(self.position, point)

    def move_toward(self, point: tuple[float, float], step: float) -> None:
        d = self.distance_to(point)
        if d <= step:
            self.position = point
            return
        x, y = self.position
        self.position = (x + (point[0] - x) / d * step, y + (point[1] - y) / d * step)


# --- Transitions ---
class SpotIntruder(Transition[Guard]):
    target_state = "Chasing"

    def on_heartbeat(self, data, delta_time):
        return data.distance_to(data.intruder[0]) < SIGHT_RANGE


class LoseIntruder(Transition[Guard]):
    target_state = "Returning"

    def on_heartbeat(self, data, delta_time):
        return data.distance_to(data.intruder[0]) > LOSE_RANGE


class ReachPost(Transition[Guard]):
    target_state = "Patrolling"

    def on_heartbeat(self, data, delta_time):
        return data.distance_to(data.post) <= PATROL_RADIUS + 1.0


# --- States ---
class Patrolling(State[Guard]):
    transitions = [SpotIntruder]

    def on_enter(self, data):
        x, y = data.position
        data.angle = math.atan2(y - data.post[1], x - data.post[0])

    def on_heartbeat(self, data, delta_time):
        data.angle += PATROL_SPEED * delta_time
        data.position = (
            data.post[0] + math.cos(data.angle) * PATROL_RADIUS,
            data.post[1] + math.sin(data.angle) * PATROL_RADIUS,
        )


class Chasing(State[Guard]):
    transitions = [LoseIntruder]

    def on_heartbeat(self, data, delta_time):
        data.move_toward(data.intruder[0], CHASE_SPEED * delta_time)


class Returning(State[Guard]):
    transitions = [SpotIntruder, ReachPost]

    def on_heartbeat(self, data, delta_time):
        data.move_toward(data.post, RETURN_SPEED * delta_time)


def spawn_guard(
    registry: MachineRegistry,
    intruder: list[tuple[float, float]],
    x: float,
    y: float,
) -> StateMachine[Guard]:
    guard = Guard(post=(x, y), position=(x + PATROL_RADIUS, y), intruder=intruder)
    machine = StateMachine(
        Patrolling, [Patrolling, Chasing, Returning], data=guard, registry=registry,
    )
    machine.state_changed.connect(lambda new, old: guard.trail.append(new.name))
    return machine


def main():
    pygame.init()
    screen = pygame.display.set_mode((WIDTH, HEIGHT))
    pygame.display.set_caption(TITLE)
    pg_clock = pygame.time.Clock()
    font = pygame.font.SysFont("monospace", 14)

    # --- Engine setup ---
    engine = Engine(LoopConfig(fps=FPS))
    registry = MachineRegistry(source=engine.heartbeat)
    intruder = [(WIDTH / 2, HEIGHT / 2)]

    guards: list[StateMachine[Guard]] = []
    for _ in range(4):
        guards.append(spawn_guard(
            registry, intruder,
            random.uniform(120, WIDTH - 120), random.uniform(120, HEIGHT - 120),
        ))

    paused = False
    running = True

    while running:
        dt = pg_clock.tick(FPS) / 1000.0

        # --- Events ---
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    paused = not paused
                elif event.key == pygame.K_d and guards:
                    guards.pop(0).destroy()
            elif event.type == pygame.MOUSEMOTION:
                intruder[0] = (float(event.pos[0]), float(event.pos[1]))
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                mx, my = event.pos
                guards.append(spawn_guard(registry, intruder, float(mx), float(my)))

        # --- Update ---
        if not paused:
            engine.step(dt)

        # --- Draw ---
        screen.fill(BG_COLOR)
        for machine in guards:
            guard = machine.data
            px, py = guard.post
            pygame.draw.circle(screen, POST_COLOR, (int(px), int(py)), int(PATROL_RADIUS), 1)
            color = STATE_COLORS[machine.current_state.name]
            gx, gy = guard.position
            pygame.draw.circle(screen, color, (int(gx), int(gy)), GUARD_RADIUS)

        ix, iy = intruder[0]
        pygame.draw.circle(screen, INTRUDER_COLOR, (int(ix), int(iy)), 6)

        # --- HUD ---
        chasing = sum(1 for m in guards if m.current_state.name == "Chasing")
        pause_str = "  [PAUSED]" if paused else ""
        hud_lines = [
            f"Guards: {len(guards)}   Chasing: {chasing}   "
            f"FPS: {pg_clock.get_fps():.0f}   Frame: {engine.clock.frame_number}{pause_str}",
            "LClick=Guard  D=Destroy  Space=Pause  Esc=Quit",
        ]
        for i, line in enumerate(hud_lines):
            surf = font.render(line, True, HUD_COLOR)
            screen.blit(surf, (10, 8 + i * 20))

        pygame.display.flip()

    registry.close()
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
