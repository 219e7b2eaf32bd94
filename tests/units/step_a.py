def run(data):
    return {**data, "a": True}
