import logging
import time

from polyvoice.audio.engine import AudioEngine
from polyvoice.audio.mixer import Mixer
from polyvoice.effects.delay import FeedbackDelay
from polyvoice.instruments.polyphonic import PolySynth
from polyvoice.sequencing.clock import AudioClock

SR = 44100
BLOCK = 256

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                        datefmt="%H:%M:%S")

    clock = AudioClock(sr=SR, bpm=90)

    # 4 voices, one shared clock
    synth = PolySynth(4, clock=clock)
    synth.set_preset("Pianoetta")

    delay = FeedbackDelay(delay_time="8n.", feedback=0.35, wet=0.3, clock=clock)
    synth.connect(delay)

    mixer = Mixer()
    mixer.add_track(0, delay, gain=1.0, pan=0.0)

    engine = AudioEngine(mixer, clock, blocksize=BLOCK, channels=2,
                         pre_gain=0.3, limiter_drive=1.15)
    engine.start()

    chords = [["C4", "E4", "G4"], ["A3", "C4", "E4"], ["F3", "A3", "C4"], ["G3", "B3", "D4", "F4"]]

    print("PolySynth demo running. Ctrl+C to quit.")
    try:
        while True:
            for i, chord in enumerate(chords):
                synth.attack_release(chord, "2n", "+0.05")
                # let the feedback swell on the last chord
                delay.set_feedback(0.6 if i == len(chords) - 1 else 0.35, ramp_time=0.5)
                time.sleep(clock.to_seconds("2n"))
    except KeyboardInterrupt:
        engine.stop()
        synth.dispose()
        delay.dispose()
