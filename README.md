# tubesync

Building blocks for driving ESP-NOW LED tubes from sound. tubesync watches
frequency regions of a spectrum for beats, filters audio with a biquad
bandpass, stores effect presets and tube layouts as JSON, builds and parses
raw ESP-NOW frames, flashes firmware to tubes found over mDNS, and serves
the effect list over HTTP.

## Modules

- `tubesync.helper`: colour conversion between `Rgb` and `Hsv`
  (`rgb_to_hsv`, `hsv_to_rgb`, hue in degrees), the logarithmic display axis
  (`log_to_linear`, `linear_to_log`, base 40), a bounded `FixedQueue` that
  drops its oldest item when full, and formatting helpers: `mac_to_hex`
  gives twelve lower-case hex digits, `array_to_string` gives `[ a, b ]` in
  hex, and `bits_to_byte` packs eight bits, most significant first.
- `tubesync.biquad`: `BiquadBandpass(low_cut, high_cut, sample_rate)` with
  `process(sample)`. `AudioFilter(lower=10, upper=200)` filters a block of
  samples at 48 kHz. Setting its `lower` or `upper` rebuilds the filter.
- `tubesync.frequency_region`: `FrequencyRegion`, a band of the spectrum on
  the logarithmic axis. `process_data(data, now)` updates the level, the
  smoothed level and an adaptive threshold with a floor of 0.5. It returns
  `True` on a beat, with a 100 ms debounce. `mouse_click`, `mouse_event` and
  `mouse_released` move the band, its edges or its threshold line. Set
  `on_value_changed` to be told when the threshold is dragged.
- `tubesync.presets`: `LedConfig`, `TubeSetting`, `TubeLayout` and
  `EffectPreset` (`EffectPreset.empty(name, preset_id)` gives the default
  effect). JSON files are read and written with `load_effects`,
  `save_effects`, `load_layouts` and `save_layouts`.
- `tubesync.espnow`: `EspNowPacket` builds a radiotap header and an 802.11
  vendor action frame carrying up to 250 payload bytes (`to_bytes`,
  `set_dst_mac`). `radiotap_length`, `source_mac`, `payload_length` and
  `payload` take received frames apart and return `None` when a frame is too
  short.
- `tubesync.sender`: `EspNowSender`, a raw packet socket bound to an
  interface. You can use it as a context manager. `frame(payload, dst_mac)`
  returns the bytes that `send` would write.
- `tubesync.receiver`: `EspNowReceiver` runs a background thread that passes
  each ESP-NOW payload to `callback(source_mac, payload)`. `set_filter`
  limits it to one destination MAC. The filter is a classic BPF program
  (`build_filter`) that is evaluated inside the process. `handle_frame` and
  `parse_frame` work on captured bytes without a socket.
- `tubesync.flasher`: `discover_devices` sends an mDNS PTR query for
  `_arduino._tcp.local` and collects the IPv4 addresses that answer.
  `flash(firmware)` runs `python3 ../espota.py -p 8266 -i <ip> -f <firmware>`
  for each device (`flash_command` builds that command line).
- `tubesync.server`: the HTTP control endpoint described below.

## Quick look

```python
from tubesync.helper import Hsv, hsv_to_rgb, mac_to_hex
from tubesync.biquad import BiquadBandpass
from tubesync.espnow import EspNowPacket

print(hsv_to_rgb(Hsv(120.0, 1.0, 1.0)))                         # Rgb(r=0.0, g=1.0, b=0.0)
print(mac_to_hex(bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])))  # "020000000001"

band = BiquadBandpass(10, 200, 48000)
filtered = [band.process(sample) for sample in (0.0, 1.0, 0.0, -1.0)]

packet = EspNowPacket(src_mac=bytes([0x02, 0, 0, 0, 0, 0x0A]))
packet.set_dst_mac(bytes([0x02, 0, 0, 0, 0, 0x01]))
packet.payload = b"hello"
wire = packet.to_bytes()
```

## Running the control server

```
tubesync [--host 0.0.0.0] [--port 8080] [--effects effects.json]
```

- `GET /effects` returns the presets in the effects file as a JSON list of
  `{"id": ..., "name": ...}` objects. The id is the position in the list. If
  the file cannot be read, the server answers 500.
- `POST /` with a body such as `{"value": 3}` looks up preset 3 and answers
  `Got action`. The server still answers that way when the body is invalid;
  the error is logged. From the command line the selection is only logged.
  To act on it, build the server in code with
  `make_server(host, port, effects_path, on_select)`. `on_select` is called
  with the index and the `EffectPreset`.
- `OPTIONS` answers CORS preflight requests.

Any other method gets `400 Bad Request`. Any other path gets
`404 Not Found`.

## What it does not do

tubesync does not capture audio or compute spectra. `FrequencyRegion` needs
a spectrum from you. There is no show controller that picks colours and
groups on each beat, no list of tube addresses, and no graphical interface.
The server reports which preset was selected but sends nothing to the tubes
itself.

## Requirements

Python 3.10 or later, with `dnspython`. Filtering, beat detection, presets,
frame building and parsing run on any platform. Sending and receiving frames
needs Linux packet sockets, a monitor-mode interface and the privileges to
open raw sockets.