"""Demo: trace the same recursive factorial program in Python, Java and C++."""

from steptrace import trace
from steptrace.cli import format_step

PROGRAMS = {
    "python": """\
def factorial(n):
    if n <= 1:
        return 1
    return n * factorial(n - 1)

numbers = [1, 2, 3]
result = factorial(5)
print(f"Factorial of 5 is: {result}")
""",
    "java": """\
public class Main {
    static int factorial(int n) {
        if (n <= 1) {
            return 1;
        }
        return n * factorial(n - 1);
    }

    public static void main(String[] args) {
        int[] numbers = {1, 2, 3};
        int result = factorial(5);
        System.out.println("Factorial of 5 is: " + result);
    }
}
""",
    "cpp": """\
#include <iostream>
using namespace std;

int factorial(int n) {
    if (n <= 1) return 1;
    return n * factorial(n - 1);
}

int main() {
    vector<int> numbers = {1, 2, 3};
    int result = factorial(5);
    cout << "Factorial of 5 is: " << result << endl;
    return 0;
}
""",
}


def main():
    for language, source in PROGRAMS.items():
        print("=" * 60)
        print(f"{language.upper()}")
        print("=" * 60)
        steps = trace(source, language)
        for step in steps:
            print(format_step(step))
        print(f"\nFinal output: {steps[-1].output}\n")


if __name__ == "__main__":
    main()
