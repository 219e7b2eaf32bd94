def run(data):
    raise RuntimeError("Simulated step error")
