"""Colours, styles and value formatting for console output."""