"""pytest configuration and fixtures for csharp-splitter tests."""

import json
import os
from pathlib import Path

import pytest


def pytest_configure(config):
    """
    Point the MCP request log at a temporary file before any test module
    imports the server.
    """
    log_dir = Path(config.rootpath) / ".pytest_cache"
    log_dir.mkdir(exist_ok=True)
    os.environ.setdefault("CSHARP_SPLITTER_LOG", str(log_dir / "csharp-splitter-mcp.log"))


SAMPLE_SOURCE = """\
using System;
using System.Collections.Generic;
using System.Threading.Tasks;
using System.Data;
using Microsoft.Extensions.Logging;

namespace TestNamespace
{
    public class TestUtility
    {
        private readonly ILogger<TestUtility> _logger;
        private readonly string _connectionString;

        public TestUtility(ILogger<TestUtility> logger, string connectionString)
        {
            _logger = logger;
            _connectionString = connectionString;
        }

        #region User Management Methods

        /// <summary>
        /// Gets a user by ID
        /// </summary>
        /// <param name="userId">The user ID</param>
        /// <returns>User object</returns>
        public async Task<User> GetUserAsync(int userId)
        {
            try
            {
                _logger.LogInformation($"Getting user with ID: {userId}");
                // Database logic here
                return new User { Id = userId, Name = "Test User" };
            }
            catch (Exception ex)
            {
                _logger.LogError(ex, "Error getting user");
                throw;
            }
        }

        public User GetUser(int userId)
        {
            _logger.LogInformation($"Getting user with ID: {userId}");
            return new User { Id = userId, Name = "Test User" };
        }

        public async Task<bool> SaveUserAsync(User user)
        {
            try
            {
                _logger.LogInformation($"Saving user: {user.Name}");
                // Database save logic
                return true;
            }
            catch (Exception ex)
            {
                _logger.LogError(ex, "Error saving user");
                return false;
            }
        }

        public bool DeleteUser(int userId)
        {
            _logger.LogInformation($"Deleting user with ID: {userId}");
            // Database delete logic
            return true;
        }

        #endregion

        #region Data Processing Methods

        public async Task<List<T>> ProcessDataAsync<T>(List<T> data) where T : class
        {
            _logger.LogInformation($"Processing {data.Count} items");
            await Task.Delay(100); // Simulate processing
            return data;
        }

        public bool ValidateInput(string input)
        {
            if (string.IsNullOrWhiteSpace(input))
            {
                _logger.LogWarning("Input validation failed: empty input");
                return false;
            }
            return true;
        }

        public virtual decimal CalculateResults(decimal input1, decimal input2)
        {
            _logger.LogInformation($"Calculating results for {input1} and {input2}");
            return input1 + input2;
        }

        public async Task<string> GenerateReportAsync(int reportId)
        {
            _logger.LogInformation($"Generating report with ID: {reportId}");
            await Task.Delay(200); // Simulate report generation
            return $"Report {reportId} generated successfully";
        }

        #endregion

        #region Utility Methods

        public static string FormatString(string input, params object[] args)
        {
            return string.Format(input, args);
        }

        public T ConvertData<T>(object data) where T : class
        {
            try
            {
                return data as T;
            }
            catch (Exception ex)
            {
                throw new InvalidOperationException($"Cannot convert data to {typeof(T).Name}", ex);
            }
        }

        private void LogError(Exception ex, string message)
        {
            _logger.LogError(ex, message);
        }

        public void SendNotification(string message, string recipient)
        {
            _logger.LogInformation($"Sending notification to {recipient}: {message}");
            // Notification logic here
        }

        #endregion

        #region Configuration Methods

        public string GetConfigValue(string key)
        {
            // Configuration retrieval logic
            return $"Value for {key}";
        }

        public void SetConfigValue(string key, string value)
        {
            // Configuration setting logic
            _logger.LogInformation($"Setting config {key} = {value}");
        }

        public async Task<Dictionary<string, string>> GetAllConfigAsync()
        {
            await Task.Delay(50);
            return new Dictionary<string, string>
            {
                { "setting1", "value1" },
                { "setting2", "value2" }
            };
        }

        #endregion
    }

    public class User
    {
        public int Id { get; set; }
        public string Name { get; set; }
        public string Email { get; set; }
        public DateTime CreatedDate { get; set; }
    }
}
"""

SAMPLE_METHODS = [
    "GetUserAsync", "GetUser", "SaveUserAsync", "DeleteUser",
    "ProcessDataAsync<T>", "ValidateInput", "CalculateResults", "GenerateReportAsync",
    "FormatString", "ConvertData<T>", "LogError", "SendNotification",
    "GetConfigValue", "SetConfigValue", "GetAllConfigAsync",
]

CIRCULAR_SOURCE = """\
using System;

namespace CircularTest
{
    public class CircularClass
    {
        public void SimpleMethod()
        {
            Console.WriteLine("simple");
        }

        public void CallerMethod()
        {
            SimpleMethod();
            this.SimpleMethod();
        }

        public int DirectRecursion(int n)
        {
            if (n <= 0) return 0;
            return DirectRecursion(n - 1);
        }

        public void IndirectA()
        {
            IndirectB();
        }

        public void IndirectB()
        {
            IndirectA();
        }

        public void MixedCaller()
        {
            SimpleMethod();
            IndirectA();
            MissingHelper();
        }
    }
}
"""

OVERLOAD_SOURCE = """\
using System;

namespace Overloads
{
    public class Store
    {
        public void Save(int id)
        {
            Console.WriteLine(id);
        }

        public void Save(string name)
        {
            Save(name.Length);
        }

        public void Load()
        {
            Save(1);
        }
    }
}
"""


@pytest.fixture
def write_cs(tmp_path):
    """Write C# text to a file under tmp_path and return its path as a string."""

    def _write(text: str, name: str = "Sample.cs") -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def sample_file(write_cs):
    return write_cs(SAMPLE_SOURCE, "TestUtility.cs")


@pytest.fixture
def circular_file(write_cs):
    return write_cs(CIRCULAR_SOURCE, "CircularClass.cs")


@pytest.fixture
def overload_file(write_cs):
    return write_cs(OVERLOAD_SOURCE, "Store.cs")


@pytest.fixture
def write_config(tmp_path):
    """Write a split config document and return its path as a string."""

    def _write(doc: dict, name: str = "config.json") -> str:
        path = tmp_path / name
        path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def base_config(sample_file, tmp_path):
    """Shared fields of a split job over the sample class."""
    return {
        "sourceFile": sample_file,
        "destinationFolder": str(tmp_path / "out"),
        "newNamespace": "TestNamespace.Refactored",
        "mainPartialClassName": "TestUtility.Core.cs",
    }
