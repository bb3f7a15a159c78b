#!/usr/bin/env python3
# pxenet/__main__.py
from pxenet.cli import main

main(prog_name="pxenet")
