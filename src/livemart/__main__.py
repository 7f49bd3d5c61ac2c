from livemart.main import run

run()
