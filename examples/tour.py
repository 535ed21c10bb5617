# A session replayed fragment by fragment with `replcore run examples/tour.py`.
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def norm(self) -> float:
        return math.hypot(self.x, self.y)


origin = Point(0.0, 0.0)
p: Point = Point(3.0, 4.0)
p.norm()


def distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


distance(origin, p)

for step in range(3):
    print("step", step)

squares = [n * n for n in range(5)]
sum(squares)
