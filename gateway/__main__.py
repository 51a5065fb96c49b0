from gateway.cli.main import run

run()
