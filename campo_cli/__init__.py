"""
Campo CLI - Command-line interface for a live match session.

Sends MQTT commands to the MatchSessionService without writing JSON by hand.

Usage:
    campo-cli play-pause
    campo-cli possession fla --zone 2,1
    campo-cli record Chute fla 1,4 --players fla_9
    campo-cli remove 3f2a9c
    campo-cli export --select Chute "Posse de Bola"
"""

__version__ = "1.0.0"
