"""
Worldwatch - signal-intelligence engine for a situational-awareness dashboard.

Turns normalized news, market, prediction and seismic feeds into category
deviations, clustered events, hotspot levels and correlation signals, with
snapshots for playback.
"""
