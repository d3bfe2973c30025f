from dataclasses import dataclass


@dataclass
class Stats:
    """Additive cost record attached to stacks and graph nodes."""

    inuse_objects: int = 0
    inuse_bytes: int = 0
    alloc_objects: int = 0
    alloc_bytes: int = 0

    def add(self, other: "Stats") -> None:
        self.inuse_objects += other.inuse_objects
        self.inuse_bytes += other.inuse_bytes
        self.alloc_objects += other.alloc_objects
        self.alloc_bytes += other.alloc_bytes

    def __add__(self, other: "Stats") -> "Stats":
        return Stats(
            inuse_objects=self.inuse_objects + other.inuse_objects,
            inuse_bytes=self.inuse_bytes + other.inuse_bytes,
            alloc_objects=self.alloc_objects + other.alloc_objects,
            alloc_bytes=self.alloc_bytes + other.alloc_bytes,
        )


def size_fmt(num: float, suffix: str = "B") -> str:
    for unit in ["", "K", "M", "G", "T", "P", "E", "Z"]:
        if abs(num) < 1024.0:
            return f"{num:5.3f}{unit}{suffix}"
        num /= 1024.0
    return f"{num:.1f}Y{suffix}"
