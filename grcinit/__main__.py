from grcinit.cli import run

run()
