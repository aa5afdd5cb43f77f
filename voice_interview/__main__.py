#!/usr/bin/env python3
"""
Main entry point for the voice interview console.
Allows running the package with: python -m voice_interview
"""
import sys
import asyncio

from .config import get_config
from .interview.models import TurnOutcome, TurnStatus
from .interview.orchestrator import VoiceInterviewOrchestrator
from .utils import setup_logging


def _float_flag(arg: str, name: str, low: float, high: float) -> float:
    try:
        value = float(arg.split("=", 1)[1])
    except (ValueError, IndexError):
        print(f"❌ Invalid {name} value. Use --{name}={low} to --{name}={high}")
        sys.exit(1)
    return max(low, min(high, value))


def _show_outcome(outcome: TurnOutcome) -> None:
    for n in outcome.notices:
        print(f"⚠️  {n.title}: {n.description}")
    if outcome.status == TurnStatus.COMPLETED and outcome.user_text:
        print(f"💬 \"{outcome.user_text}\"")
    elif outcome.status == TurnStatus.RETRY:
        print("🔁 Please answer the current question again.")


async def console_interview(orchestrator: VoiceInterviewOrchestrator) -> None:
    """Enter starts/stops recording, typed text is sent as the answer, q stops."""
    await orchestrator.start_interview()
    print("=" * 50)
    print("Press Enter to start recording, Enter again to stop.")
    print("Or type your answer and press Enter. Type q to quit.")
    print("=" * 50)

    recording = False
    while orchestrator.session.active:
        prompt = "🔴 Recording... (Enter to stop) " if recording else "🎤 > "
        line = (await asyncio.to_thread(input, prompt)).strip()

        if line.lower() == "q":
            await orchestrator.stop()
            print("⏹️  Interview stopped")
            break

        if recording:
            recording = False
            print("🔍 Processing answer...")
            outcome = await orchestrator.finish_recording()
        elif line:
            outcome = await orchestrator.submit_text(line)
        else:
            failure = await orchestrator.start_recording()
            if failure is not None:
                print(f"❌ {failure.title}: {failure.description}")
            else:
                recording = True
            continue

        _show_outcome(outcome)
        recording = outcome.listening

    record = await orchestrator.finalize()
    if record is None:
        return
    print(f"\n📁 Session {record.session_id}: {record.questions_answered} answers ({record.status})")
    if record.analysis:
        a = record.analysis
        print(f"📊 Overall fit: {a['overall_fit']:.0f}/100 | communication {a['communication']:.1f} | "
              f"confidence {a['confidence']:.1f} | relevance {a['relevance']:.1f}")
        if a.get("summary"):
            print(f"📝 {a['summary']}")


def main():
    """Command-line interface for the voice interview."""

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    # Explicit flags take precedence over configuration
    for arg in sys.argv[1:]:
        if arg in ("--text", "--no-tts"):
            config.enable_tts = False
        elif arg in ("--tts", "--speech"):
            config.enable_tts = True
        elif arg == "--follow-ups":
            config.allow_follow_ups = True
        elif arg.startswith("--question-set="):
            config.question_set = arg.split("=", 1)[1]
        elif arg.startswith("--role="):
            config.job_role = arg.split("=", 1)[1]
        elif arg.startswith("--language="):
            config.language_code = arg.split("=", 1)[1]
        elif arg.startswith("--speed="):
            config.speech_speed = _float_flag(arg, "speed", 0.5, 2.0)
        elif arg.startswith("--volume="):
            config.speaker_volume = _float_flag(arg, "volume", 0.0, 1.0)
        else:
            print(f"❌ Unknown option: {arg}")
            sys.exit(1)

    log_file = setup_logging(config.log_file, config.log_level)

    try:
        orchestrator = VoiceInterviewOrchestrator.from_config(config)
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    if config.enable_tts:
        print(f"🔊 Speech: {config.language_code} at {config.speech_speed:.1f}x, "
              f"volume {config.speaker_volume:.1f} (use --text for text only)")
    else:
        print("📝 Text Mode: interviewer lines are printed only")
    print(f"🎙️  {config.question_set} interview for {config.job_role}")
    print(f"📝 Detailed logs: {log_file}")

    try:
        asyncio.run(console_interview(orchestrator))
    except (KeyboardInterrupt, EOFError):
        print("\n👋 Interview interrupted")


if __name__ == "__main__":
    main()
