from __future__ import annotations

"""Reminder copy and the tone picker used on every reminder tick."""

import random
from typing import Sequence

from offscreen.core.settings import Tier


FUNNY_MESSAGES: tuple[str, ...] = (
    "Hey! Lock your phone before it locks eyes with you again 👀",
    "Your screen needs a break, and so do you 💤",
    "Put me down, human. I'm tired of being touched 😂",
    "Discipline mode: ON. Lock me before I start roasting you 🔥",
    "Don't scroll, just soul! Lock your screen 🧘",
    "Your phone misses its pocket. Let it rest 📱",
    "Still here? Your willpower called, it wants a word 💪",
    "I'm starting to think you have commitment issues... with discipline 😏",
    "Plot twist: You're supposed to be the one in control 🎭",
    "Breaking news: Human fails to lock phone, again 📰",
    "Your future self is judging you right now ⏰",
    "This is an intervention. Lock. The. Phone. 🚨",
    "I'm not mad, just disappointed 😔",
    "Tick tock, lock the clock! ⏱️",
    "Your screen time stats are crying 😢",
    "Breaking: Phone discovers human has 'just checking' syndrome 📊",
    "Your focus level: 0%. Your scroll level: 100% 📈",
    "Reminder: You're supposed to be the boss here 😎",
    "Plot twist: Locking your phone won't hurt, I promise 🤞",
    "Emergency alert: User detected scrolling during focus time! 🚨",
    "Pro tip: The app works better when you actually follow its advice 💡",
    "Your future self sent a postcard: 'Thanks for locking the phone!' 📮",
)

SERIOUS_MESSAGES: tuple[str, ...] = (
    "Please lock your phone to continue your focus session 🔒",
    "Lock your device to pause notifications ⏸️",
    "Focus mode active: Lock your phone 🎯",
    "Reminder: Lock your phone to stop notifications 📲",
    "Your timer is running. Lock your device 🔐",
    "Stay focused: Lock your phone to maintain concentration 💪",
    "Protect your focus: Lock your device now 🔐",
    "Timer active: Lock your phone for optimal results ⏰",
    "Focus session in progress: Please lock your device 🎯",
    "Maintain discipline: Lock your phone and stay present 🧘",
)

MOTIVATIONAL_MESSAGES: tuple[str, ...] = (
    "You're doing great! Keep that phone locked 🔓",
    "Discipline unlocked! Your future self is proud 💯",
    "Focus champion: Still staying strong! 🏆",
    "Mindful moment: Phone locked, mind free 🧠",
    "Consistency is key! You're nailing it 💪",
    "Focus streak: Keep it going! 🔥",
    "Strength training: Mental edition 💪",
    "Mindful choice: Phone down, life up 🌟",
)

EARLY_PHASE_END = 0.3
LATE_PHASE_START = 0.7


def phase_fraction(elapsed_ms: float, duration_ms: float) -> float:
    """Elapsed share of the session clamped to [0, 1]; a zero duration counts as 0."""
    if duration_ms <= 0:
        return 0.0
    return max(0.0, min(1.0, elapsed_ms / duration_ms))


def tone_messages(funny_mode: bool) -> Sequence[str]:
    return FUNNY_MESSAGES if funny_mode else SERIOUS_MESSAGES


def select_message(
    fraction: float,
    tier: Tier | str,
    smart_enabled: bool,
    funny_mode: bool,
    rng: random.Random | None = None,
) -> str:
    """Pick reminder copy.

    Without smart notifications on the pro tier the pick is uniform over the
    funny or serious set. With them, early reminders encourage, the middle of
    the session mixes both pools and the last stretch uses the pointed tone.
    """
    rng = rng or random.Random()
    tone = tone_messages(funny_mode)
    if not (smart_enabled and Tier(tier) is Tier.PRO):
        return rng.choice(tone)

    fraction = max(0.0, min(1.0, fraction))
    if fraction < EARLY_PHASE_END:
        pool: Sequence[str] = MOTIVATIONAL_MESSAGES
    elif fraction < LATE_PHASE_START:
        pool = (*tone, *MOTIVATIONAL_MESSAGES)
    else:
        pool = tone
    return rng.choice(pool)
