#!/usr/bin/env python3
"""
Example: Markov-Chain Diagnostics on a Panel

This example demonstrates:
- Parsing a Time,Instance1..K panel
- Per-step transition matrices and the homogeneity check
- Comparing observed sequences with the first-order Markov approximation
- Plotting the representative TPM and weak-stationarity trajectory
"""

import os
import sys

import matplotlib

matplotlib.use("Agg")

# The parent directory is added to the import path.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib.pyplot as plt

from stochdep import analyze_text
from stochdep.export import export_time_series_to_json
from stochdep.visualization import MarkovVisualizer

print("=" * 60)
print("Example: Markov-Chain Diagnostics")
print("=" * 60)

PANEL = """Time,Instance1,Instance2,Instance3,Instance4,Instance5,Instance6
2020,1,1,2,2,3,3
2021,1,2,2,3,3,2
2022,2,2,3,3,2,1
2023,2,3,3,2,1,1
"""

report = analyze_text(PANEL)

print(f"\nState space: {', '.join(report.state_space)}")
for tpm in report.step_tpms:
    print(f"\n{tpm.label}")
    for history in tpm.from_states:
        row = ", ".join(f"{s}: {tpm.prob(history, s):.2f}" for s in tpm.to_states)
        print(f"  {','.join(history)} -> {row}")

print("\nHomogeneity:")
for d in report.homogeneity.hellinger_distances:
    print(f"  {d.pair}: {d.distance:.3f}")
print(f"  GJS distance: {report.homogeneity.gjs_distance:.3f}")
print(f"  Homogeneous: {report.is_homogeneous}")
print(f"  Representative TPM: {report.representative_tpm.label}")

fit = report.markovian_fit
print("\nMarkovian fit:")
print(f"  Hellinger: {fit.hellinger_distance:.3f}")
print(f"  Jensen-Shannon: {fit.jensen_shannon_distance:.3f}")

print("\nWeak stationarity:")
ws = report.weak_stationarity
for label, m, v in zip(ws.time_labels, ws.mean, ws.variance):
    print(f"  {label}: mean={m:.3f} variance={v:.3f}")

fig, axes = plt.subplots(1, 2, figsize=(14, 5))
MarkovVisualizer.plot_tpm(report.representative_tpm, ax=axes[0])
MarkovVisualizer.plot_stationarity(ws, ax=axes[1])
out_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "time_series_diagnostics.png")
fig.savefig(out_path)
plt.close(fig)
print(f"\nSaved plot to {out_path}")

print(f"JSON export: {len(export_time_series_to_json(report))} characters")
