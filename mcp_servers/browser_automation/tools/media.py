"""
Media tools (media module): element inventory, audio sampling, playback control.

Audio analysis runs a Web Audio AnalyserNode inside the page for a timed window
(100 ms sampling interval) and reduces the byte-frequency frames to volume and
band activity figures.
"""

from __future__ import annotations

from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import SmartToolError, int_arg, require_arg, tool

MEDIA_ACTIONS = ["play", "pause", "mute", "unmute", "seek"]
DEFAULT_ANALYSIS_MS = 2000
MAX_ANALYSIS_MS = 30000

DEFINITIONS: list[dict[str, Any]] = [
    tool("browser_get_media_summary", "Get a summary of all audio and video elements on the page (see browser_docs)"),
    tool(
        "browser_get_audio_analysis",
        "Analyze audio output for a duration to detect sound vs silence and frequencies (see browser_docs)",
        {
            "durationMs": {"type": "number", "description": "Duration to analyze in ms", "default": DEFAULT_ANALYSIS_MS},
            "selector": {"type": "string", "description": "Optional selector to specific media element"},
        },
    ),
    tool(
        "browser_control_media",
        "Control a media element (play, pause, seek, mute) (see browser_docs)",
        {
            "selector": {"type": "string", "description": "Selector for the audio/video element"},
            "action": {"type": "string", "enum": MEDIA_ACTIONS},
            "value": {"type": "number", "description": "Value for seek action (time in seconds)"},
        },
        ["selector", "action"],
    ),
]

_SUMMARY_JS = """() => Array.from(document.querySelectorAll('audio, video')).map((el, index) => {
    const buffered = [];
    for (let i = 0; i < el.buffered.length; i++) {
        buffered.push([el.buffered.start(i), el.buffered.end(i)]);
    }
    return {
        index,
        tagName: el.tagName.toLowerCase(),
        id: el.id || null,
        src: el.currentSrc || el.src,
        state: {
            paused: el.paused, muted: el.muted, ended: el.ended, loop: el.loop,
            playbackRate: el.playbackRate, volume: el.volume
        },
        timing: { currentTime: el.currentTime, duration: el.duration },
        buffer: { readyState: el.readyState, buffered },
        videoSpecs: el.tagName === 'VIDEO' ? { videoWidth: el.videoWidth, videoHeight: el.videoHeight } : undefined
    };
})"""

_ANALYSIS_JS = """async ({ duration, selector }) => new Promise(async (resolve) => {
    try {
        let element;
        if (selector) {
            element = document.querySelector(selector);
        } else {
            const all = Array.from(document.querySelectorAll('audio, video'));
            element = all.find(e => !e.paused) || all[0];
        }
        if (!element) return resolve({ error: 'No media element found' });

        const CtxClass = window.AudioContext || window.webkitAudioContext;
        if (!CtxClass) return resolve({ error: 'Web Audio API not supported' });
        const ctx = new CtxClass();
        if (ctx.state === 'suspended') await ctx.resume();

        let source;
        try {
            source = ctx.createMediaElementSource(element);
        } catch (e) {
            return resolve({ error: `Cannot connect to media source: ${e.message}. (Check CORS headers)` });
        }
        const analyzer = ctx.createAnalyser();
        analyzer.fftSize = 256;
        const bins = analyzer.frequencyBinCount;
        const data = new Uint8Array(bins);
        source.connect(analyzer);
        analyzer.connect(ctx.destination);

        const samples = [];
        const started = Date.now();
        const band = (arr, from, to) => {
            const slice = arr.slice(from, to);
            return slice.reduce((a, b) => a + b, 0) / Math.max(1, slice.length);
        };
        const timer = setInterval(() => {
            analyzer.getByteFrequencyData(data);
            let sum = 0, max = 0;
            for (let i = 0; i < bins; i++) { sum += data[i]; if (data[i] > max) max = data[i]; }
            samples.push({ avg: sum / bins, max, bass: band(data, 0, 5), mid: band(data, 5, 40), treble: band(data, 40, bins) });
            if (Date.now() - started < duration) return;
            clearInterval(timer);
            try { source.disconnect(); analyzer.disconnect(); ctx.close(); } catch (e) { }
            if (samples.length === 0) return resolve({ status: 'No samples' });
            const mean = key => samples.reduce((a, s) => a + s[key], 0) / samples.length;
            const peak = Math.max(...samples.map(s => s.max));
            const activeFrequencies = ['bass', 'mid', 'treble'].filter(k => mean(k) > 20);
            resolve({
                element: { tagName: element.tagName, id: element.id, src: element.currentSrc },
                isSilent: peak < 5,
                averageVolume: Math.round(mean('avg')),
                peakVolume: peak,
                activeFrequencies,
                samples: samples.length
            });
        }, 100);
    } catch (e) {
        resolve({ error: e.message });
    }
})"""

_CONTROL_JS = """async ({ selector, action, value }) => {
    const el = document.querySelector(selector);
    if (!el) return { error: `Element not found: ${selector}` };
    if (!(el instanceof HTMLMediaElement)) return { error: 'Element is not audio/video' };
    try {
        switch (action) {
            case 'play': await el.play(); return { status: 'playing' };
            case 'pause': el.pause(); return { status: 'paused' };
            case 'mute': el.muted = true; return { status: 'muted' };
            case 'unmute': el.muted = false; return { status: 'unmuted' };
            case 'seek':
                if (typeof value !== 'number') return { error: 'Seek value required' };
                el.currentTime = value;
                return { status: 'seeked', newTime: el.currentTime };
        }
        return { error: `Unknown media action: ${action}` };
    } catch (e) {
        return { error: e.message };
    }
}"""


def _page_result(result: Any, tool_name: str) -> ToolResult:
    if isinstance(result, dict) and result.get("error"):
        return ToolResult.error(str(result["error"]), tool=tool_name)
    return ToolResult.json(result)


def media_summary(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    return ToolResult.json(ctx.page().evaluate(_SUMMARY_JS))


def audio_analysis(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    duration = int_arg(args, "durationMs", DEFAULT_ANALYSIS_MS, tool="browser_get_audio_analysis")
    duration = max(100, min(duration, MAX_ANALYSIS_MS))
    result = ctx.page().evaluate(_ANALYSIS_JS, {"duration": duration, "selector": args.get("selector")})
    return _page_result(result, "browser_get_audio_analysis")


def control_media(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    selector = require_arg(args, "selector", tool="browser_control_media")
    action = require_arg(args, "action", tool="browser_control_media")
    if action not in MEDIA_ACTIONS:
        raise SmartToolError(
            tool="browser_control_media",
            action=str(action),
            reason=f"Unknown media action: {action}",
            suggestion=f"Use one of: {', '.join(MEDIA_ACTIONS)}",
        )
    value = args.get("value")
    if action == "seek" and not isinstance(value, (int, float)):
        raise SmartToolError(
            tool="browser_control_media",
            action="seek",
            reason="Seek value required",
            suggestion="Pass 'value' as the target time in seconds",
        )
    result = ctx.page().evaluate(_CONTROL_JS, {"selector": selector, "action": action, "value": value})
    return _page_result(result, "browser_control_media")


HANDLERS = {
    "browser_get_media_summary": media_summary,
    "browser_get_audio_analysis": audio_analysis,
    "browser_control_media": control_media,
}
