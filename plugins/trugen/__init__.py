"""Trugen video-agent plugin for Shu."""
