from audioconvert.app import run


run()
