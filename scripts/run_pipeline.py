from __future__ import annotations

import subprocess


def main():
    subprocess.run(
        ["python", "-m", "agent_swarm.entrypoints.cli", "--env", "offline", "I was charged twice"],
        check=True,
    )


if __name__ == "__main__":
    main()
