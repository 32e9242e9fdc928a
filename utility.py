#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# utility.py - Blocking terminal prompts

from errors import SignalLost


def _readline(prompt):
    try:
        return input(prompt)
    except EOFError:
        raise SignalLost("stdin closed while waiting for input") from None


def userChoice(options, prompt="Your selection: "):
    print(" -=-= Choose One =-=- ")
    for i in range(len(options)):
        print("[{}] : {}".format(i+1, options[i]))
    while True:
        answer = _readline(prompt)
        try:
            j = int(answer)
        except ValueError:
            print("Please enter a number from 1 to {}.".format(len(options)))
            continue
        if 1 <= j <= len(options):
            # Options are shown 1-N but options[] is zero-indexed.
            return options[j-1]
        print("Please enter a number from 1 to {}.".format(len(options)))


def waitForEnter(prompt=""):
    # Any line counts, empty or not: the keypress is the signal.
    _readline(prompt)


def yesOrNo(prompt):
    while True:
        answer = _readline("{} [Y/N]\n>".format(prompt)).strip().lower()
        if answer.startswith("y"):
            return True
        if answer.startswith("n"):
            return False
        print("Sorry, I couldn't find a Y or N in your answer. ")
