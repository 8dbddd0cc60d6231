from threadwatch.cli import app

app(prog_name="threadwatch")
