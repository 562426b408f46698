"""Shared fixtures: sample sources, a deterministic measurer and fake timers."""

import pytest

from structuregram.render.fonts import FixedWidthMeasurer
from structuregram.source.document import SourceDocument

JAVA_SOURCE = """\
public class Sample {
    int max(int a, int b) {
        if (a > b) {
            return a;
        } else {
            return b;
        }
    }

    void grade(int g) {
        switch (g) {
            case 1:
            case 2:
                System.out.println("low");
                break;
            case 3:
                System.out.println("high");
                break;
        }
    }

    int sum() {
        int total = 0;
        for (int i = 0; i < 10; i++) {
            total += i;
        }
        return total;
    }

    void loops(List<String> items) {
        while (running) {
            step();
        }
        do {
            count--;
        } while (count > 0);
        for (String item : items) {
            process(item);
        }
    }

    void guarded() {
        try {
            open();
        } catch (IOException e) {
            log(e);
        } finally {
            close();
        }
    }

    abstract void hook();
}
"""

TS_SOURCE = """\
function classify(n: number): string {
  if (n < 0) {
    return "negative";
  }
  for (let i = 0; i < n; i++) {
    console.log(i);
  }
  switch (n) {
    case 0:
      return "zero";
    default:
      return "positive";
  }
}

const double = (x: number) => x * 2;

class Counter {
  count = 0;
  increment(): void {
    this.count += 1;
  }
}

abstract class Shape {
  abstract area(): number;
}
"""


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


@pytest.fixture
def measurer():
    """7 units per character and 16 high, so geometry is exact and font-free."""
    return FixedWidthMeasurer()


@pytest.fixture
def java_doc():
    return SourceDocument(JAVA_SOURCE, "java")


@pytest.fixture
def ts_doc():
    return SourceDocument(TS_SOURCE, "typescript")


@pytest.fixture
def timers():
    """List collecting every FakeTimer created through `timer_factory`."""
    return []


@pytest.fixture
def timer_factory(timers):
    def factory(interval, function, args=()):
        t = FakeTimer(interval, function, args)
        timers.append(t)
        return t
    return factory
